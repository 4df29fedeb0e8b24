# setup.py
from setuptools import setup, find_packages

setup(
    name="synthvault",
    version="0.1.0",
    packages=find_packages(),
    install_requires=[
        "plyvel",             # LevelDB state store
        "msgpack",            # record and signing-data encoding
        "cryptography",       # ECDSA keys and signatures
        "pycryptodome",       # keccak transaction ids
        "prometheus_client",  # metrics
        "psutil",             # monitoring
        "requests",           # oracle price feed
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "synthvault=synthvault.cli:main",
        ],
    },
)
