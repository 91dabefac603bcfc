from setuptools import find_packages, setup

setup(
    name="slidealign",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["app", "bootloader"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "pydantic>=2.6",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "openai>=1.40",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    include_package_data=True,
    description="Align narration transcripts and audio with presentation slides",
)
