# -*- coding: utf-8 -*-
"""Define project metadata
"""

__title__ = "tmpcas"
__summary__ = "A temporary content-addressable blob store."

__version__ = "0.1.0"

__install_requires__ = ["anyio", "blake3"]
__tests_require__ = ["pytest", "tox"]

__author__ = "Weedon & Scott Studios"
__email__ = "Studios@WeedonAndScott.com"

__license__ = "MIT License"
