# src/smart_todo/__main__.py

from .cli.main import main

if __name__ == "__main__":
    main()
