# archstrap/__main__.py
from archstrap.cli import run


def main():
    """
    Main application
    """
    run()


if __name__ == "__main__":
    main()
