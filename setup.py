"""Setup configuration for GxmCrypt."""

from setuptools import find_packages, setup

setup(
    name="gxmcrypt",
    version="0.1.0",
    description=(
        "Stream-cipher + GHASH authenticated encryption over GF(2^128) "
        "with tag-collision and forgery constructors"
    ),
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="GxmCrypt Contributors",
    license="MIT",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "cryptography>=41.0",
        "numpy>=1.24",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Security :: Cryptography",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
