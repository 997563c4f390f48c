"""
packs package — assemble policy packs and evaluate them.
"""

from .pack import PolicyPack, PolicyPackAssembler, check_policy_config
from .file_pack import PackDefinition, load_pack_file, load_resources_file
from .evaluator import PolicyEvaluator

__all__ = [
    "PolicyPack",
    "PolicyPackAssembler",
    "check_policy_config",
    "PackDefinition",
    "load_pack_file",
    "load_resources_file",
    "PolicyEvaluator",
]
