"""Command line interface modules.

This package provides the command-line tools for:
- Sending signals and registered commands to a control port
- Querying daemon information and configuration
- Finding local Tor daemons
- Error reporting and logging
"""
