"""
Client factory for CLRebalancer.
Maps the CLIENT_ADAPTER setting to a (ledger, protocol) client pair.
"""
import logging
from typing import Callable, Dict, Tuple

from config import Config
from exceptions import ConfigurationError
from ledger_client import LedgerClient, ProtocolClient
from simulator import SimulatedLedgerClient, SimulatedProtocolClient, build_paper_chain

logger = logging.getLogger(__name__)

ClientBuilder = Callable[[Config], Tuple[LedgerClient, ProtocolClient]]

PAPER_WALLET_ADDRESS = '0x00000000000000000000000000000000000000000000000000000000000000aa'


def build_simulated_clients(config: Config) -> Tuple[LedgerClient, ProtocolClient]:
    """In-memory paper trading clients seeded with the configured pool"""
    owner = config.wallet_address or PAPER_WALLET_ADDRESS
    chain = build_paper_chain(config.pool_address, owner)
    return SimulatedLedgerClient(chain, owner), SimulatedProtocolClient(chain)


class ClientFactory:
    """
    Factory for ledger/protocol client pairs.

    Network adapters register a builder under their adapter name.
    """

    _builders: Dict[str, ClientBuilder] = {
        'simulator': build_simulated_clients,
    }

    @classmethod
    def create_clients(cls, config: Config) -> Tuple[LedgerClient, ProtocolClient]:
        """
        Build the client pair for config.client_adapter

        Raises:
            ConfigurationError: If no builder is registered for the adapter
        """
        adapter = config.client_adapter
        if adapter not in cls._builders:
            available = ', '.join(sorted(cls._builders))
            raise ConfigurationError(f"Unknown CLIENT_ADAPTER '{adapter}'. Available adapters: {available}")

        ledger, protocol = cls._builders[adapter](config)
        logger.info(f"Created '{adapter}' clients for wallet {ledger.address}")
        return ledger, protocol

    @classmethod
    def register(cls, name: str, builder: ClientBuilder):
        """Register a builder returning (LedgerClient, ProtocolClient) for a Config"""
        if not callable(builder):
            raise ValueError("Client builder must be callable")
        cls._builders[name.lower()] = builder
        logger.info(f"Registered client adapter: {name}")

    @classmethod
    def available_adapters(cls):
        return sorted(cls._builders)
