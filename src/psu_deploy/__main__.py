"""Allow `python -m psu_deploy` to run the bulk deployment."""

from psu_deploy.cli.bulk import main

if __name__ == "__main__":
    main()
