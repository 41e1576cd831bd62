"""
cardscan/__main__.py: Entry point for running CLI as module
Allows: python -m cardscan <command>
"""

from cardscan.cli.main import cli

if __name__ == '__main__':
    cli()
