"""Main entry point for the task tracker.

Installed as the `tasks` console script; `python src/main.py` also works.
"""
from cli import cli


def main():
    cli(prog_name='tasks')

if __name__ == "__main__":
    main()
