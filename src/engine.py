import logging
import threading
from typing import Dict, Iterable, Iterator, List, Optional

from config import EngineConfig
from ledger import Ledger
from message_queue import InMemoryQueue
from models import ClientAccount, ProcessingStats, Transaction
from reader import open_transactions

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Folds a transaction stream into final account states.

    With one worker the stream is applied by a single Ledger. With more,
    transactions are partitioned by client id: the caller's thread publishes
    each one to its shard's queue and every shard worker folds its own queue
    into its own Ledger. Per-client order is preserved because a client
    always maps to the same shard.

    Transaction ids are unique across all clients, so a deposit or
    withdrawal id showing up in a second shard ends the sharded phase: the
    workers are drained, their ledgers merged, and the rest of the stream is
    folded serially. The result always equals the serial fold.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or EngineConfig()
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        with open_transactions(filepath) as transactions:
            return self.process_transactions(transactions)

    def process_transactions(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        if self._config.workers == 1:
            accounts = self._new_ledger().process_all(transactions)
        else:
            accounts = self._process_sharded(iter(transactions))

        logger.info(f"Processing complete. {self._stats}")
        return accounts

    def _new_ledger(self) -> Ledger:
        return Ledger(policy=self._config.policy, stats=self._stats)

    def _process_sharded(self, transactions: Iterator[Transaction]) -> Dict[int, ClientAccount]:
        ledgers = [self._new_ledger() for _ in range(self._config.workers)]
        queues = [InMemoryQueue() for _ in ledgers]
        failures: List[BaseException] = []

        workers = []
        for ledger, queue in zip(ledgers, queues):
            worker = threading.Thread(target=self._consume_transactions, args=(ledger, queue, failures))
            worker.start()
            workers.append(worker)

        logger.info(f"Started {len(workers)} shard workers")
        try:
            collision = self._publish_transactions(transactions, queues)
        finally:
            for queue in queues:
                queue.shutdown()
            for worker in workers:
                worker.join()

        if failures:
            raise failures[0]

        merged = self._new_ledger()
        for ledger in ledgers:
            merged.absorb(ledger)

        if collision is not None:
            logger.info(
                f"Transaction {collision.transaction_id} appears in more than one shard, "
                f"continuing serially"
            )
            merged.process(collision)
            merged.process_all(transactions)

        return merged.accounts()

    def _publish_transactions(
        self, transactions: Iterator[Transaction], queues: List[InMemoryQueue]
    ) -> Optional[Transaction]:
        """
        Route each transaction to its client's shard.

        Stops at the first deposit or withdrawal whose id was already routed
        to a different shard and returns it unpublished.
        """
        owners: Dict[int, int] = {}
        for transaction in transactions:
            shard = transaction.client_id % len(queues)
            if transaction.transaction_type.moves_funds:
                if owners.setdefault(transaction.transaction_id, shard) != shard:
                    return transaction
            queues[shard].publish_message(transaction)
        return None

    def _consume_transactions(self, ledger: Ledger, queue: InMemoryQueue, failures: List[BaseException]) -> None:
        """Consumer loop: pull from the shard queue and apply in order."""
        try:
            while True:
                transaction = queue.consume_message()
                if transaction is None:
                    if queue.is_drained():
                        break
                    continue
                ledger.process(transaction)
        except Exception as e:
            logger.exception("Shard worker failed")
            failures.append(e)
