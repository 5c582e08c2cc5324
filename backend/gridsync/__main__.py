"""CLI entry point: python -m gridsync [play|serve]"""

from gridsync.cli import main

if __name__ == "__main__":
    main()
