from bookingcore.tasks.auto_assign import AutoAssignTask
from bookingcore.tasks.auto_reschedule import AutoRescheduleTask
from bookingcore.tasks.runner import SweepRunner

__all__ = ["AutoAssignTask", "AutoRescheduleTask", "SweepRunner"]
