"""Read-only access to the election contract."""

import logging
from typing import Any, Protocol

import requests

from .config import Settings

logger = logging.getLogger(__name__)

ELECTION_ABI = [
    {
        "name": "getAllPolls",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256[]"}],
    },
    {
        "name": "getPoll",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "pollId", "type": "uint256"}],
        "outputs": [
            {"name": "id", "type": "uint256"},
            {"name": "title", "type": "string"},
            {"name": "description", "type": "string"},
            {"name": "startTime", "type": "uint256"},
            {"name": "endTime", "type": "uint256"},
            {"name": "status", "type": "uint8"},
            {"name": "totalVotes", "type": "uint256"},
            {"name": "candidateCountOut", "type": "uint256"},
            {"name": "minVotersRequired", "type": "uint256"},
        ],
    },
    {
        "name": "getPollResults",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "pollId", "type": "uint256"}],
        "outputs": [
            {"name": "candidateIds", "type": "uint256[]"},
            {"name": "votes", "type": "uint256[]"},
        ],
    },
    {
        "name": "getCandidateDetailsForPoll",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "pollId", "type": "uint256"}],
        "outputs": [
            {"name": "ids", "type": "uint256[]"},
            {"name": "names", "type": "string[]"},
            {"name": "parties", "type": "string[]"},
            {"name": "imageUrls", "type": "string[]"},
            {"name": "descriptions", "type": "string[]"},
            {"name": "isActiveList", "type": "bool[]"},
        ],
    },
]


class ContractReader(Protocol):
    """The four view calls the results engine consumes.

    Implementations return the raw ABI-decoded values; validation is
    left to :mod:`poll_results_api.decoding`.
    """

    def get_all_polls(self) -> Any: ...

    def get_poll(self, poll_id: int) -> Any: ...

    def get_poll_results(self, poll_id: int) -> Any: ...

    def get_candidate_details(self, poll_id: int) -> Any: ...


class Web3ContractReader:
    """:class:`ContractReader` backed by a JSON-RPC endpoint via web3."""

    def __init__(self, rpc_url: str, address: str, timeout: float = 30.0,
                 user_agent: str = "") -> None:
        from web3 import Web3

        session = requests.Session()
        if user_agent:
            session.headers["User-Agent"] = user_agent
        provider = Web3.HTTPProvider(
            rpc_url, request_kwargs={"timeout": timeout}, session=session
        )
        self._web3 = Web3(provider)
        self._contract = self._web3.eth.contract(
            address=Web3.to_checksum_address(address), abi=ELECTION_ABI
        )
        logger.info("Reading election contract %s via %s", address, rpc_url)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Web3ContractReader":
        if not settings.contract_address:
            raise ValueError("POLL_RESULTS_CONTRACT_ADDRESS is not set")
        return cls(
            settings.rpc_url,
            settings.contract_address,
            timeout=settings.request_timeout,
            user_agent=settings.user_agent,
        )

    def get_all_polls(self) -> Any:
        return self._contract.functions.getAllPolls().call()

    def get_poll(self, poll_id: int) -> Any:
        return self._contract.functions.getPoll(poll_id).call()

    def get_poll_results(self, poll_id: int) -> Any:
        return self._contract.functions.getPollResults(poll_id).call()

    def get_candidate_details(self, poll_id: int) -> Any:
        return self._contract.functions.getCandidateDetailsForPoll(poll_id).call()
