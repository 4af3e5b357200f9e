"""Protocol interface for remote evaluation clients."""

from typing import Protocol, runtime_checkable

from experiment_client.models import ExperimentUser, FetchOptions, Variant


@runtime_checkable
class RemoteEvaluationClientProtocol(Protocol):
    """Protocol for clients that fetch variants for a subject.

    The base HTTP client and the caching decorator both implement
    ``fetch``, so either can be handed to code that needs variants.
    """

    async def fetch(
        self,
        user: ExperimentUser,
        options: FetchOptions | None = None,
    ) -> dict[str, Variant]:
        """Fetch variants for a user.

        Args:
            user: Subject to evaluate.
            options: Optional fetch options.

        Returns:
            Mapping of flag key to assigned variant.

        Raises:
            InvalidSubjectError: If ``user`` is None.
            FetchError: If the fetch fails.
        """
        ...
