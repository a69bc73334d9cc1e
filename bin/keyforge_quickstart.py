#!/usr/bin/env python

import sys

import path_util  # noqa: F401

from keyforge.client.cli import main

if __name__ == "__main__":
    sys.exit(main())
