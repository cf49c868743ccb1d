#! /usr/bin/env python

"""
Setuptools setup file for udslink.
"""

import io
import os

try:
    from setuptools import setup
except ImportError:
    raise ImportError("setuptools is required to install udslink !")


def get_long_description():
    """
    Extract description from README.md, for PyPI's usage
    """
    try:
        fpath = os.path.join(os.path.dirname(__file__), "README.md")
        with io.open(fpath, encoding="utf-8") as f:
            readme = f.read()
            desc = readme.partition("<!-- start_ppi_description -->")[2]
            desc = desc.partition("<!-- stop_ppi_description -->")[0]
            return desc.strip()
    except IOError:
        return None


setup(
    long_description=get_long_description(),
    long_description_content_type='text/markdown',
)
