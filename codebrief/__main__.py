"""Allow ``python -m codebrief``."""

from codebrief.api.cli.main import main

if __name__ == "__main__":
    main()
