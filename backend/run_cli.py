#!/usr/bin/env python
"""
Start the Chainwatch CLI without installing the package
"""
from chainwatch.cli.main import app

if __name__ == "__main__":
    app()
