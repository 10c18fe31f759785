"""Base class for sifter agents that turn raw text into checked claims.

Sifters are the analytical arm of the fact-check system:
- ClaimExtractionAgent: Text -> ClaimExtractionResult (final claims)

Verification (VerdictAggregator) does not go through this interface; it is
driven directly by the pipeline with claims and their sources.

Sifters that are driven through the generic agent interface implement sift().
"""

from abc import abstractmethod

from factcheck_system.agents.base_agent import BaseAgent


class BaseSifter(BaseAgent):
    """
    Abstract base for sifter agents.

    The process() method routes to the abstract sift() method and tracks
    success and failure counts.

    Attributes:
        processed_count: Number of successfully processed items.
        error_count: Number of failed processing attempts.
    """

    def __init__(self, name: str, description: str = ""):
        super().__init__(name=name, description=description)
        self.processed_count: int = 0
        self.error_count: int = 0

    @abstractmethod
    async def sift(self, content: dict) -> list[dict]:
        """
        Process content and produce structured output.

        Args:
            content: Raw content dict. Expected keys vary by sifter type.

        Returns:
            List of produced items as dicts.
        """
        pass

    async def process(self, input_data: dict) -> dict:
        """
        BaseAgent.process implementation routing to sift().

        Args:
            input_data: Dict with 'content' key containing data to process.

        Returns:
            Dict with:
                - success: bool
                - results: list of produced items
                - count: number of items produced
                - error: error message if failed
        """
        try:
            results = await self.sift(input_data.get("content", {}))
            self.processed_count += 1
            return {
                "success": True,
                "results": results,
                "count": len(results),
            }
        except Exception as e:
            self.error_count += 1
            self.logger.opt(exception=True).error(f"Sift failed: {e}")
            return {
                "success": False,
                "error": str(e),
                "results": [],
            }

    def get_capabilities(self) -> list[str]:
        """Return base sifter capabilities."""
        return ["sifting", "analysis"]

    def get_stats(self) -> dict:
        """
        Return processing statistics.

        Returns:
            Dict with processed_count, error_count, and error_rate.
        """
        total = self.processed_count + self.error_count
        error_rate = self.error_count / total if total > 0 else 0.0
        return {
            "processed_count": self.processed_count,
            "error_count": self.error_count,
            "error_rate": error_rate,
        }
