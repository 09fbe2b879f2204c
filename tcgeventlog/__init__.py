from .eventlog import EventLog, LogEntry, LogAssembler, parse_event_log, load_event_log, entries_equal
from .tcg import LogFormat, SpecIdContext
from .errors import EventLogError
from .version import get_version
__all__=['EventLog','LogEntry','LogAssembler','parse_event_log','load_event_log','entries_equal','LogFormat','SpecIdContext','EventLogError','__version__']
__version__=get_version()
