# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""CLI wrapper for :mod:`plantree.bench`."""

from plantree.bench import main

if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
