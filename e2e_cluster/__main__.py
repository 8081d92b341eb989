#!/usr/bin/env python3
"""
Entry point for running e2e_cluster as a module.
This file enables: python -m e2e_cluster
"""

from .main import main

if __name__ == '__main__':
    main()
