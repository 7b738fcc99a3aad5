# SPDX-License-Identifier: MPL-2.0
"""
Trait Verify - Main entry point for the CLI.

This module provides the command-line interface for the Trait Verify package.
"""

from trait_verify.cli.main import cli

if __name__ == "__main__":
    cli()
