
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="receipt-preprocessor",
    version="1.0.0",
    author="Receipt Preprocessor Team",
    description="Border removal, de-skew and normalization of photographed receipts for OCR",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["receipt_prep", "receipt_prep.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Graphics :: Graphics Conversion",
        "Topic :: Scientific/Engineering :: Image Processing",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "receipt-prep=receipt_prep.cli.process_receipts:main",
            "receipt-prep-api=receipt_prep.api_server:main",
        ],
    },
    include_package_data=True,
)
