""" Build script for pip package. """
from setuptools import setup, find_packages

VERSION = "0.1.0"

def readme():
    """ Generate readme file. """
    try:
        with open("./readme.md", encoding="utf8") as file:
            return file.read()
    except IOError:
        return ""


setup(
    name="rastergate",
    version=VERSION,
    description="Handle-based adapter over the GDAL raster engine",
    long_description=readme(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 2 - Alpha",
    ],
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    zip_safe=True,
    install_requires=[
        "numpy",
        "GDAL",
        "psutil",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
)
