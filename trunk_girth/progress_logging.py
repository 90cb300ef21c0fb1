import time


def log_progress(enable_progress_prints: bool, message: str) -> None:
    if not enable_progress_prints:
        return
    print(f"[{time.strftime('%H:%M:%S')}] {message}", flush=True)
