class Mp3GainError(Exception):
    pass
