"""Board-level errors."""

from typing import List


class ValidationError(Exception):
    """A draft was rejected locally, before anything was sent.

    Attributes:
        errors: One message per problem found
    """

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)
