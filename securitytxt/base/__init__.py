"""Foundational building blocks: configuration and exceptions."""
#
# WHAT'S IN THIS MODULE:
# - config.py: policy, HTTP, GnuPG and logging settings (env driven)
# - exceptions.py: typed exceptions raised by capabilities and the assembler
#
