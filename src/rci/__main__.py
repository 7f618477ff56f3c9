"""
Allow running the provisioner as a module.

Usage:
    python -m rci
    python -m rci --verify
    python -m rci --pull-model
"""

from .CLI.main import main

if __name__ == "__main__":
    main()
