#!/usr/bin/env python3
import sys

from setuptools import setup

from savepath import __version__ as VERSION

if sys.version_info < (3, 10):
    sys.exit('Python 3.10 is required to run savepath')

setup(
    name='savepath',
    version=VERSION,
    license='GPL-3',
    packages=[
        'savepath',
        'savepath.util',
    ],
    zip_safe=False,
    python_requires='>=3.10',
    install_requires=[
        'PyYAML',
        'PyGObject',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['savepath=savepath.__main__:main'],
    },
    description='Default save locations of Legendary and GOG games',
    long_description="""savepath finds where installed Epic (through Legendary) and GOG
    games keep their saves, expanding store variables and translating Windows
    paths of games running through Wine.""",
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: End Users/Desktop',
        'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
        'Programming Language :: Python',
        'Operating System :: POSIX :: Linux',
        'Topic :: Games/Entertainment'
    ],
)
