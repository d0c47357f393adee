#!/usr/bin/env python

import setuptools

setuptools.setup(
    name="gpmotion",
    version="0.3.0",
    description="Gaussian-process regularized objective for per-particle motion estimation from correlation maps.",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    package_data={"gpmotion": ["configs/*.yaml"]},
    include_package_data=True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    install_requires=['numpy>=1.18.2',
                      'scipy>=1.5.2',
                      'PyYAML>=5.3',
                      'termcolor>=1.1.0',
                      'colorama>=0.4.3; platform_system=="Windows"',
                      ],
    extras_require={
        'test': ['pytest>=6.0'],
    },
    python_requires='>=3.10',
)
