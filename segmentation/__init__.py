from .classifiers import SEGMENTS, RunContext, SegmentClassifier, Subject, Verdict
from .creatives import CATALOG, Creative, CreativeSelector
from .dedup import DedupRegistry
from .dispatcher import DispatchResult, FcmDispatcher, StubDispatcher, build_dispatcher
from .errors import ConfigurationError, LedgerDataError, LedgerQueryError, SegmentationError
from .ledger import CounterEntry, InMemoryLedger, LedgerRecord, MongoActivityLedger, UserSnapshot
from .orchestrator import Orchestrator, build_orchestrator, run_orchestration
from .window import CountryWindow, TimeWindowGate, load_windows
