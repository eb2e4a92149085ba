"""CLI command modules. Importing a module registers its commands."""
