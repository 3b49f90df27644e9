"""Set-up file for PoreBox for installations using ``pip install .``"""
from setuptools import find_packages, setup


with open("requirements.txt") as f:
    required = f.read().splitlines()


setup(
    name="porebox",
    version="0.3.0",
    license="GPL",
    keywords=["porous media simulation box scheme compositional multiphase"],
    install_requires=required,
    extras_require={"testing": ["pytest"]},
    description="Box-scheme kernel for compositional multiphase flow in porous media",
    platforms=["Linux", "Windows", "Mac OS-X"],
    package_data={
        "porebox": ["py.typed"],
    },
    packages=find_packages("src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    zip_safe=False,
)
