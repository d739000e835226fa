"""
CLI module for terminus-hotfix
"""

from .main import create_cli_group, main

__all__ = ['create_cli_group', 'main']
