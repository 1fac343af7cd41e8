from threading import Lock

_PRINT_LOCK = Lock()


def locked_print(*args, **kwargs):
    with _PRINT_LOCK:
        print(*args, **kwargs)


def format_time(seconds: float) -> str:
    if seconds < 60:
        return f"{round(seconds)}s"
    if seconds < 3600:
        minutes = int(seconds // 60)
        secs = round(seconds % 60)
        if secs == 60:
            minutes, secs = minutes + 1, 0
        return f"{minutes}m{secs:02d}s"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h{minutes:02d}m"


def normalize_bucket_name(bucket_name: str) -> str:
    # Whitespace anywhere in a bucket name is never valid, drop it.
    return "".join(bucket_name.split())
