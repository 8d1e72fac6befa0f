KB = 1024
MB = 1024 * KB
GB = 1024 * MB

BAR_BLOCKS = "▏▎▍▌▋▊▉"
BAR_WIDTH = 6


def format_bytes(num_bytes: int) -> str:
    if num_bytes >= GB:
        return f"{num_bytes / GB:.1f} GB"
    elif num_bytes >= MB:
        return f"{num_bytes / MB:.1f} MB"
    elif num_bytes >= KB:
        return f"{num_bytes / KB:.1f} KB"
    return f"{num_bytes} B"


def format_rate(bytes_per_sec: float) -> str:
    if bytes_per_sec >= MB:
        return f"{bytes_per_sec / MB:.1f} MB/s"
    elif bytes_per_sec >= KB:
        return f"{bytes_per_sec / KB:.1f} KB/s"
    elif bytes_per_sec > 0:
        return f"{bytes_per_sec:.0f} B/s"
    return "—"


def rate_color(bytes_per_sec: float) -> str:
    if bytes_per_sec > 1_000_000:
        return "red"
    elif bytes_per_sec > 100_000:
        return "yellow"
    elif bytes_per_sec > 0:
        return "green"
    return "bright_black"


def rate_bar(rate: float, max_rate: float, width: int = BAR_WIDTH) -> str:
    """Horizontal bar of ``width`` cells showing ``rate`` relative to ``max_rate``."""
    if max_rate <= 0 or rate <= 0:
        return " " * width
    filled = min(rate / max_rate, 1.0) * width
    full_blocks = int(filled)
    partial = int((filled - full_blocks) * 8)

    bar = "█" * full_blocks
    if full_blocks < width and partial > 0:
        bar += BAR_BLOCKS[min(partial, 7) - 1]
    return bar.ljust(width)
