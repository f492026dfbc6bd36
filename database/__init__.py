from .database import Database
from .models import Trainer, STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED

__all__ = ["Database", "Trainer", "STATUS_PENDING", "STATUS_APPROVED", "STATUS_REJECTED"]
