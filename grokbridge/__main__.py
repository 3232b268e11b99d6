"""Run the proxy server: ``python -m grokbridge``."""

from .main import run

if __name__ == "__main__":
    run()
