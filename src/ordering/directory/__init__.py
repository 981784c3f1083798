"""Directory adapter abstraction: lookups against the marketplace's stores, addresses, products and users."""

import os

_directory_instance = None


def get_directory():
    """Return the configured directory adapter (singleton).

    Uses the in-memory directory by default, optionally seeded from the JSON
    file named by DIRECTORY_SEED_FILE. Select another adapter via the
    DIRECTORY_ADAPTER environment variable.
    """
    global _directory_instance
    if _directory_instance is None:
        adapter = os.environ.get("DIRECTORY_ADAPTER", "memory")
        if adapter == "memory":
            from ordering.directory.memory_adapter import InMemoryDirectory

            _directory_instance = InMemoryDirectory()
            seed_file = os.environ.get("DIRECTORY_SEED_FILE")
            if seed_file:
                _directory_instance.load_file(seed_file)
        else:
            raise ValueError(f"Unknown directory adapter: {adapter}")
    return _directory_instance


def reset_directory():
    """Reset the directory singleton (useful for testing)."""
    global _directory_instance
    _directory_instance = None
