from solt.cli import cli


def main():
    cli(prog_name="solt")


if __name__ == "__main__":
    main()
