"""Exception hierarchy for spectralevents.

``ConfigurationError``
    Bad analysis parameters or malformed inputs.  Always raised before any
    transform work starts.

``NumericError``
    A subject's data cannot be transformed (non-finite samples, trials with
    no samples).  Carries the subject and trial it was raised for so the
    orchestrator can report it and, if asked to, move on to the next subject.
"""


class SpectralEventsError(Exception):
    """Base class for spectralevents errors."""


class ConfigurationError(SpectralEventsError, ValueError):
    """Invalid configuration, frequency vector, find-method or class labels."""


class NumericError(SpectralEventsError, ValueError):
    """Data of one subject/trial cannot be transformed.

    Parameters
    ----------
    message : str
        What went wrong.
    subject : str, optional
        Identifier of the offending subject.
    trial : int, optional
        Index of the offending trial (column of the trial matrix).
    """

    def __init__(
        self, message: str, subject: str | None = None, trial: int | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.subject = subject
        self.trial = trial

    def __reduce__(self):
        # Worker processes send exceptions back pickled
        return (type(self), (self.message, self.subject, self.trial))

    def __str__(self) -> str:
        where = []
        if self.subject is not None:
            where.append(f"subject {self.subject!r}")
        if self.trial is not None:
            where.append(f"trial {self.trial}")
        if where:
            return f"{', '.join(where)}: {self.message}"
        return self.message
