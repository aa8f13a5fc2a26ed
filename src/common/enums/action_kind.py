import enum


class ActionKind(str, enum.Enum):
    SEND_PAYMENT = "send_payment"
    ANON_SEND = "anon_send"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    CROSS_CHAIN_SEND = "cross_chain_send"
    SPLIT_PAYMENT = "split_payment"
    RECURRING_PAYMENT = "recurring_payment"
    SET_PIN = "set_pin"
