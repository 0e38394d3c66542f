class SyncError(Exception):
    """
    A remote read or write failed.

    The message is meant for the user as is; network, auth and malformed
    response failures are not told apart beyond their text.
    """
    pass
