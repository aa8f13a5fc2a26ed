from src.modules.transfers.entities.transfer_entity import TransferEntity

Transfer = TransferEntity

__all__ = ["Transfer", "TransferEntity"]
