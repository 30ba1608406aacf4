# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 09:58:14 2026
"""

import setuptools

setuptools.setup(
    name="pysemfit",
    version="0.1.0",
    packages=setuptools.find_packages(include=["pysemfit", "pysemfit.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.17.2',
        'numba>=0.45.1',
        'scipy>=1.5.3',
        'tqdm>=4.36.1',
        'pandas>=1.2.1'
        ],
    extras_require={"test": ["pytest"]},
)
