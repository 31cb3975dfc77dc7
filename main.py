#!/usr/bin/env python3
"""
DDNS Panel - Main Entry Point

This is the main entry point for the DDNS Panel.
It can be run directly or imported as a module.
"""

from ddns_panel.cli.main import main

if __name__ == "__main__":
    main()
