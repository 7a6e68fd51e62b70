from spaingest.CLI import cli

if __name__ == "__main__":
    cli()
