import logging


class _NoLogHandler(logging.Handler):
    """Log handler that asserts if anything is logged."""

    LOGGING_FORMAT = "%(levelname)s: %(message)s"

    def __init__(self, logger):
        logging.Handler.__init__(self)
        self.setFormatter(logging.Formatter(self.LOGGING_FORMAT))
        self.logger = logger

    def __enter__(self):
        self.logger.addHandler(self)

    def __exit__(self, exc_type, exc_value, traceback):
        self.logger.removeHandler(self)

    def emit(self, record):
        message = self.format(record)
        assert False, f"Unexpected logging: {message}"


def no_log(logger):
    """Return a context manager that asserts if anything is emitted
    on the given logger.
    """
    return _NoLogHandler(logger)


class SeqRandom:
    """Stand-in for L{random.Random} that picks predetermined indices.

    Only the methods used by the generators are provided.
    """

    def __init__(self, *indices):
        self.indices = list(indices)

    def _next(self):
        return self.indices.pop(0)

    def choice(self, seq):
        return seq[self._next()]

    def randint(self, low, high):
        value = low + self._next()
        assert low <= value <= high
        return value

    def choices(self, population, k):
        return [population[self._next()] for _ in range(k)]
