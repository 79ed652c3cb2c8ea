"""Client surfaces for DocChat: Flask web app and command-line interface."""
