from paris_tennis_listener.cli import main

if __name__ == "__main__":
    main()
