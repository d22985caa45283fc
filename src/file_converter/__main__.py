#!/usr/bin/env python3

from file_converter.server import main as server_main


def main():
    """Entry point for the file-converter command."""
    server_main()


if __name__ == "__main__":
    main()
