#!/usr/bin/env python3

"""Installer for aodv module

AODV routing with EOCW multi-criteria path selection, in Python.
"""

from setuptools import setup

setup (description = "AODV routing with energy and congestion aware "
                      "path selection, in Python",
       name = "aodv-eocw",
       license = "BSD",
       version = "1.0",
       packages = [ "aodv" ],
       python_requires = ">=3.6",
       extras_require = {
           "yaml" : "PyYAML"
           },
       classifiers=[
           "Development Status :: 3 - Alpha",
           "Topic :: System :: Networking",
           "License :: OSI Approved :: BSD License",
           "Programming Language :: Python :: 3",
           ],
       )
