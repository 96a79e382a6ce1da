from gamesift.ui.cli import entrypoint

entrypoint()
