from setuptools import setup, find_packages

setup(
       name="ncbi-services",
       version="0.1.0",
       description="Rate-limited clients for the NCBI BLAST and Entrez services",
       packages=find_packages(exclude=["tests", "tests.*", "examples"]),
       install_requires=[
           "requests>=2.31.0",
           "pydantic>=2.5.0",
           "click>=8.1.0",
           "tenacity>=8.2.0",
       ],
       extras_require={
           "dev": ["pytest>=7.4.0", "black>=23.0.0", "mypy>=1.7.0"],
       },
       python_requires=">=3.9",
       entry_points={
           "console_scripts": [
               "ncbi-services=ncbi_services.cli:main",
           ],
       },
   )
