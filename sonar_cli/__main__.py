"""Allow ``python -m sonar_cli``."""

from sonar_cli.cli import cli

if __name__ == "__main__":
    cli(prog_name="sonar-cli")
