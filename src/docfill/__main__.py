"""Entry point for python -m docfill execution.

    python -m docfill --help
    python -m docfill new ./template.html
"""

from docfill.cli import app

if __name__ == "__main__":
    app()
