"""
Helper functions for formatting data into human-readable strings.
"""


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    size = float(bytes_size)
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    if i == 0:
        return f"{int(size)} B"
    return f"{size:.1f} {units[i]}"


def parse_priorities(text: str) -> list[int]:
    """
    Parses a comma-separated file priority list such as '1,0,6'.

    Raises:
        ValueError: An entry is not a non-negative integer.
    """
    priorities = []
    for part in text.split(","):
        part = part.strip()
        if not part.isdigit():
            raise ValueError(f"Invalid file priority: '{part}'")
        priorities.append(int(part))
    return priorities
