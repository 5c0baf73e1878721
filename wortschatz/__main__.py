"""Allow running as: python -m wortschatz"""

from wortschatz.cli.main import main

if __name__ == "__main__":
    main()
