"""
chunkwise - semantic chunking of source code for retrieval

Usage:
    python main.py <command> [options]

Commands:
    chunk <file> [--repo PATH]   - Print the chunks of one file as JSON
    scan <repo_path>             - Chunk a whole repository
    languages                    - List supported languages
"""

from cli.commands import cli


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
