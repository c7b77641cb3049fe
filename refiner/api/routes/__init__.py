from . import refinement, tasks

__all__ = ["refinement", "tasks"]
