from importlib import resources


def load_stylesheet() -> str:
    with resources.files(__package__).joinpath("data/canvas.css").open("r", encoding="utf-8") as fh:
        return fh.read()
