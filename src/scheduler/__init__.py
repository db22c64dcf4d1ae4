from src.scheduler.main import SweepResult, run_once, run_sweep, scheduler_loop

__all__ = [
    "SweepResult",
    "run_once",
    "run_sweep",
    "scheduler_loop",
]
