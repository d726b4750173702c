# setup.py
"""Setup script for the video duplicate finder."""

import os

from setuptools import setup, find_packages

setup(
    name="video-duplicate-finder",
    version="1.0.0",
    description="Find near-duplicate videos with perceptual fingerprints and similarity clustering",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="vdupe developers",
    packages=find_packages(exclude=["vdupe.tests", "vdupe.tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "Pillow>=8.0.0",
        "imagehash>=4.0.0",
        "tqdm>=4.50.0",
        "xxhash>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
            "pytest-cov>=2.10.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "vdupe=vdupe.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Multimedia :: Video",
    ],
)
