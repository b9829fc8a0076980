import os
import time


def new_object_id() -> str:
    """24-hex id: 4 bytes of epoch seconds followed by 8 random bytes."""
    return f"{int(time.time()):08x}{os.urandom(8).hex()}"
