"""Entry point for running saml_sp as a module.

This allows the package to be executed as:
    python -m saml_sp
"""

from saml_sp.cli.main import cli

if __name__ == "__main__":
    cli()
