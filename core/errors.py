"""
Error types raised while executing a multicall batch
"""


class MulticallError(Exception):
    """Base class for all batch execution failures"""


class EncodingError(MulticallError):
    """The calls could not be packed against the aggregator ABI"""


class TransportError(MulticallError):
    """The RPC node could not be reached or returned an error"""


class ContractRevertError(MulticallError):
    """
    The aggregator reverted the whole batch.
    Raised instead of partial results since a revert leaves nothing to decode.
    """

    def __init__(self, message: str, data: bytes | None = None):
        super().__init__(message)
        self.data = data


class DecodingError(MulticallError):
    """The response does not match the aggregator return schema"""
