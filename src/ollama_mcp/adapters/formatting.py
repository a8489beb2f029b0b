"""Display helpers."""

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_file_size(size: int) -> str:
    """Human readable size using base-1024 units, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"

    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(SIZE_UNITS) - 1:
        exponent += 1

    scaled = round(size / 1024 ** exponent, 2)
    # 1.50 -> 1.5, 2.00 -> 2
    text = f"{scaled:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[exponent]}"
