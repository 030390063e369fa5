import setuptools

with open("mus/.version") as f:
    version = f.read().strip()

setuptools.setup(
    name="mus",
    version=version,
    python_requires=">=3.11.0",
    license="Apache-2.0",
    entry_points={"console_scripts": ["mus = mus.__main__:main"]},
    packages=["mus"],
    package_data={"mus": ["*.sql", ".version"]},
    install_requires=[
        "appdirs",
        "click",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
