"""qBittorrent WebUI companion: inspect .torrent files and add them to a WebUI."""

__version__ = "0.3.0"
