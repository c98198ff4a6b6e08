"""Setup script for simpleflux package."""

from setuptools import setup, find_packages

setup(
    name='simpleflux',
    version='1.0',
    packages=find_packages(include=['simpleflux', 'simpleflux.*']),
    package_data={'simpleflux.config': ['defaults.yaml']},
    python_requires='>=3.9',
    install_requires=[
        'numpy>=1.20.0',
        'matplotlib>=3.3.0',
        'h5py>=3.0.0',
        'pyyaml>=5.4',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'scipy>=1.9.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'simpleflux=simpleflux.cli:main',
        ],
    },
)
