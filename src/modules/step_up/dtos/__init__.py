from src.modules.step_up.dtos.step_up import StepUpLink, StepUpResult

__all__ = ["StepUpLink", "StepUpResult"]
