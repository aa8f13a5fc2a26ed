from src.modules.step_up.services.step_up_service import StepUpService, step_up_store

__all__ = ["StepUpService", "step_up_store"]
