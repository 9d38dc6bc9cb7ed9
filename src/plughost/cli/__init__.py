"""CLI package for plughost."""
