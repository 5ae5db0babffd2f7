"""Stage 3: Analyze - submit encoded pages to the generative analyzer."""

from typing import Optional

from deckflow.cancellation import CancellationSignal, guarded
from deckflow.collaborators import GenerativeAnalyzer
from deckflow.models.documents import AuthContext, SourceDocument


async def request_analysis(
    analyzer: GenerativeAnalyzer,
    encoded_pages: list[str],
    document: SourceDocument,
    context: AuthContext,
    signal: Optional[CancellationSignal] = None,
) -> dict:
    """Send the pages plus file name and caller identity, return the raw response.

    Raises:
        OperationCancelled: If the signal fires before the analyzer answers.
        Exception: Whatever the analyzer raises for a non-success response.
    """
    return await guarded(
        analyzer.analyze(encoded_pages, document.name, context.caller_id),
        signal,
    )
