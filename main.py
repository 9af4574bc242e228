"""CLI entrypoint for the pixel reveal renderer."""

import sys

from pixel_reveal.cli import main

if __name__ == "__main__":
    sys.exit(main())
