from setuptools import find_packages, setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="prepmock",
    version="0.1.0",
    author="prepmock Developers",
    description="Mocking sealed classes through caller-side interception",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    include_package_data=True,
    install_requires=[],
    extras_require={
        "dev": [
            "pytest >= 7.0",
            "pytest-asyncio >= 0.21",
            "pytest-cov >= 5.0",
            "hypothesis >= 6.0",
            "flake8 >= 7.0",
            "black >= 24.0",
            "isort >= 5.13",
        ],
        "test": [
            "pytest >= 7.0",
            "pytest-asyncio >= 0.21",
            "pytest-cov >= 5.0",
            "hypothesis >= 6.0",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Topic :: Software Development :: Testing :: Mocking",
    ],
)
