"""
Main entry point for spring-twin package.

Usage:
    python -m spring_twin [--web | --mcp | --analyze ROOT [--include PKG] [--exclude PKG]]
"""

import sys
import argparse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Spring Twin - structural graph of Spring service codebases"
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--version", action="store_true", help="Show version information")
    mode.add_argument("--web", action="store_true", help="Start web server (default)")
    mode.add_argument("--mcp", action="store_true", help="Start MCP server on stdio")
    mode.add_argument("--analyze", metavar="ROOT", help="Analyse the project at ROOT once and print the job record")

    parser.add_argument("--project-id", help="Project id used with --analyze (default: directory name)")
    parser.add_argument("--include", action="append", metavar="PKG", help="Include package pattern (repeatable)")
    parser.add_argument("--exclude", action="append", metavar="PKG", help="Exclude package pattern (repeatable)")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.version:
        from spring_twin import __version__
        print(f"spring-twin version {__version__}")
        return 0

    if args.analyze:
        from spring_twin.server.cli import main as cli_main
        return cli_main(
            args.analyze,
            project_id=args.project_id,
            include_packages=args.include,
            exclude_packages=args.exclude,
        )

    if args.mcp:
        from spring_twin.server.mcp import main as mcp_main
        return mcp_main()

    from spring_twin.server.web import main as web_main
    return web_main()


if __name__ == "__main__":
    sys.exit(main())
