from .capabilities import Capabilities, CapabilitySnapshot, default_capabilities, probe
from .hasher import Hasher
from .orchestrator import HashOrchestrator, hash_file_or_check_hash
from .selector import select_backend

__all__ = [
    "Capabilities", "CapabilitySnapshot", "default_capabilities", "probe",
    "Hasher",
    "HashOrchestrator", "hash_file_or_check_hash",
    "select_backend"]
