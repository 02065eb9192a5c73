"""
Optional inference backends for pose_kit.

Backends are kept in a separate module so core functionality (decode, NMS, mapping)
stays lightweight and can be used without installing inference runtimes.

Every backend follows the same worker shape:
    backend.schedule(blob)            # run the model synchronously
    backend.peek_output(name)         # read one named output of the last run
    backend.infer(blob)               # schedule + primary output
"""

from __future__ import annotations

__all__ = []
