"""plughost - deterministic plugin orchestration for host applications."""

__version__ = "0.1.0"

def main() -> None:
    """Run the CLI entry point with lazy import."""
    from plughost.cli.main import main as cli_main

    raise SystemExit(cli_main())

__all__ = ["main", "__version__"]
