from setuptools import setup, find_packages

setup(
    name="scopic",
    version="0.1.0",
    packages=find_packages(include=["scopic", "scopic.*"]),
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "pandas>=1.3.0",
        "scikit-learn>=1.0",
        "statsmodels>=0.13.0",
        "joblib>=1.1.0",
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    python_requires='>=3.8',
    description="Topic models for assigning genes to gene sets and cells to cell clusters in scRNA-Seq data",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
