from setuptools import setup, find_packages

setup(
    name="hospital-billing",
    version="1.0.0",
    description="Hospital Billing & Insurance Claim Adjudication Engine",
    author="Hospital Billing Team",
    packages=find_packages(exclude=["scripts"]),
    install_requires=[
        "pandas>=2.0.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "excel": ["openpyxl>=3.0.0"],
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
