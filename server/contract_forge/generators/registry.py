# ─────────────────────────────────────────────────────────────────────────────
# Generator Registry — blockchain id → ContractGenerator
# ─────────────────────────────────────────────────────────────────────────────


from collections.abc import Mapping

import structlog

from contract_forge.exceptions import UnsupportedBlockchainError
from contract_forge.generators.base import ContractGenerator
from contract_forge.schemas import Blockchain

logger = structlog.get_logger(__name__)


class GeneratorRegistry:
    """Fixed mapping from Blockchain to a generator instance.

    Built once during lifespan and stored in app.state. Selection is a
    pure lookup keyed by the Blockchain enum.
    """

    def __init__(self, generators: Mapping[Blockchain, ContractGenerator]):
        self._generators: dict[Blockchain, ContractGenerator] = dict(generators)
        logger.info(
            "generator_registry_ready",
            generators={chain.value: gen.name for chain, gen in self._generators.items()},
        )

    def select(self, identifier: object) -> ContractGenerator:
        """Return the generator for ``identifier``.

        Raises UnsupportedBlockchainError for unknown, absent or
        unregistered ids.
        """
        try:
            chain = Blockchain(identifier)
        except ValueError:
            raise UnsupportedBlockchainError(identifier, self.supported) from None
        generator = self._generators.get(chain)
        if generator is None:
            raise UnsupportedBlockchainError(identifier, self.supported)
        return generator

    @property
    def supported(self) -> list[str]:
        """Registered blockchain ids, in registration order."""
        return [chain.value for chain in self._generators]
