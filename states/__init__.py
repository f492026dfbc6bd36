from .trainer_registration import TrainerRegistration, TrainerSearch

__all__ = ["TrainerRegistration", "TrainerSearch"]
