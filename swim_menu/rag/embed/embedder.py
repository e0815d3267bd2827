"""Embeddings for menu retrieval.

Menus and queries are embedded with the OpenAI embeddings API using the
caller's key; the model is fixed by settings so stored and query vectors stay
comparable.
"""

from openai import AsyncOpenAI

from swim_menu.config.settings import settings
from swim_menu.menus.types import GeneratedMenu


def menu_embedding_text(menu: GeneratedMenu) -> str:
    """Text used to embed a stored menu: title plus every item description."""
    descriptions = " ".join(" ".join(item.description for item in section.items) for section in menu.sections)
    return f"{menu.title} {descriptions}"


class OpenAIEmbedder:
    """Embedding provider backed by the OpenAI embeddings API."""

    def __init__(self, model: str | None = None):
        """Initialize embedder.

        Args:
            model: Embedding model name; defaults to settings.embedding_model
        """
        self.model = model or settings.embedding_model

    async def embed(self, text: str, credentials: str) -> list[float]:
        """Embed a single text.

        Args:
            text: Text to embed
            credentials: OpenAI API key

        Returns:
            Embedding vector

        Raises:
            ValueError: If the embedding API call fails
        """
        client = AsyncOpenAI(api_key=credentials)
        try:
            response = await client.embeddings.create(model=self.model, input=[text])
        except Exception as e:
            raise ValueError(f"Failed to generate embedding: {e}") from e
        finally:
            await client.close()

        if not response.data:
            raise ValueError("Embedding API returned no vectors")
        return list(response.data[0].embedding)
