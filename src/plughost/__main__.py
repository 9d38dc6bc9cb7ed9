"""Allow ``python -m plughost``."""

from plughost import main

if __name__ == "__main__":
    main()
