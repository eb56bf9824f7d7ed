from .assemblies import command_check_compat, command_guid, command_list_platforms
from .generation import command_generate, command_sync_if_needed

__all__ = [
    "command_check_compat",
    "command_generate",
    "command_guid",
    "command_list_platforms",
    "command_sync_if_needed",
]
