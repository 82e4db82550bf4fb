"""
The primary entry point to the application.
"""

from bikehire.cli import run

if __name__ == '__main__':
    run()
