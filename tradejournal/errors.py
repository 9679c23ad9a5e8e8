"""Exception types raised by the journal."""


class TradeJournalError(Exception):
    """Base class for journal errors."""


class ImportFormatError(TradeJournalError):
    """An import file was rejected (bad JSON layout, unsupported extension)."""


class TradeNotFound(TradeJournalError, KeyError):
    def __init__(self, trade_id: str) -> None:
        super().__init__(trade_id)
        self.trade_id = trade_id

    def __str__(self) -> str:
        return f"Trade {self.trade_id} not found"


class EntryNotFound(TradeJournalError, KeyError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(entry_id)
        self.entry_id = entry_id

    def __str__(self) -> str:
        return f"Journal entry {self.entry_id} not found"
