import os

from setuptools import find_packages, setup


def main():
    version = "20261019"
    packages = find_packages(include=["keyforge", "keyforge.*"], )
    package_data = {
        "keyforge": [
            "VERSION",
            "templates/*TEMPLATE.yml"
        ],
    }
    install_requires = [
        "asyncssh>=2.13.2",
        "bcrypt>=4.0.1",
        "cryptography>=41.0.2",
        "pydantic>=2",
        "ruamel.yaml>=0.2.5",
    ]
    extras_require = {
        "test": [
            "pytest>=7.4.0",
        ],
    }

    if "DEV_MODE" in os.environ:
        version += ".dev1"

    setup(name="keyforge",
          version=version,
          description="KeyForge: OpenSSH private key container codec",
          license="Apache 2.0",
          packages=packages,
          package_data=package_data,
          install_requires=install_requires,
          extras_require=extras_require,
          python_requires=">=3.9",
          scripts=[
              "bin/keyforge_quickstart.py"
          ],
          )


if __name__ == "__main__":
    main()
