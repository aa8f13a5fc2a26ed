from src.modules.transfers.repositories.transfer_repository import TransferRepository

__all__ = ["TransferRepository"]
