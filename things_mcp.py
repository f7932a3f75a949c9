#!/usr/bin/env python3
"""Thin loader delegating to the MCP stdio server."""

import sys

from core.desktop.things.interface.mcp_server import main

if __name__ == "__main__":
    sys.exit(main())
