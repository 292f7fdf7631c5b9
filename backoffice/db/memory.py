from typing import Dict, Any

# PROCESS-GLOBAL STATE
# Structure: { <storage key>: <serialized value>, "store_instance": EntityStore }
# Lives for the lifetime of the process only; never shared across workers.
PROCESS_STATE: Dict[str, Any] = {}
