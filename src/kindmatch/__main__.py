from kindmatch.cli import run

if __name__ == "__main__":
    run()
