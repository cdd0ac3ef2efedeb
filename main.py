#!/usr/bin/env python3
"""Run the Forbo API server. Settings are documented in forbo/app.py."""

from forbo.app import run

if __name__ == "__main__":
    run()
