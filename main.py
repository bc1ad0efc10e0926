from scent_keeper.cli import cli


if __name__ == "__main__":
    cli()
