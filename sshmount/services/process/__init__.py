from .process_runner import OutputChunk, ProcessOutcome, ProcessRunner

__all__ = ["OutputChunk", "ProcessOutcome", "ProcessRunner"]
