"""
Entry point for running the Document Tutor package as a module.

Run with:
    python -m doc_tutor
"""

from doc_tutor.interfaces.cli import main

if __name__ == "__main__":
    main()
