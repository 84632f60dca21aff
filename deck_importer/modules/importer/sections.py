"""Partitioning of a deck's cards into fixed-size sections."""

import logging

from deck_importer.services.firebase import FirestoreClient

from .schemas import Section, SectionDocument

logger = logging.getLogger(__name__)


class SectionPartitioner:
    """Hands out section ids, opening a new remote section every ``capacity`` cards.

    Sections only ever move forward: once a new section is opened the
    previous one never receives another card.
    """

    def __init__(self, store: FirestoreClient, deck_id: str, capacity: int) -> None:
        """Initialize the partitioner.

        Args:
            store: Document store the sections are created in.
            deck_id: Deck owning the sections.
            capacity: Maximum number of cards per section.
        """
        if capacity < 1:
            raise ValueError("Section capacity must be at least 1")

        self.store = store
        self.deck_id = deck_id
        self.capacity = capacity
        self.sections: list[Section] = []

    @property
    def current(self) -> Section | None:
        """Section currently receiving cards."""
        return self.sections[-1] if self.sections else None

    async def next_section(self) -> str:
        """Create the next section remotely and make it current.

        Returns:
            Id of the new section.

        Raises:
            RemoteWriteError: If the section document cannot be created.
        """
        section = Section(id=self.store.new_document_id(), index=len(self.sections))
        logger.info(f"Creating section #{section.index + 1}...")

        await self.store.create_document(
            f"decks/{self.deck_id}/sections/{section.id}",
            SectionDocument(name=section.name, index=section.index).to_firestore(),
        )

        self.sections.append(section)
        return section.id

    async def assign(self) -> str:
        """Attribute one card to a section.

        Returns:
            Id of the section the card belongs to.
        """
        current = self.current
        if current is None or current.card_count >= self.capacity:
            await self.next_section()
            current = self.sections[-1]

        current.card_count += 1
        return current.id
