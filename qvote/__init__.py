"""
qvote Quadratic Voting Governance Core

Core imports are lazily loaded so that ``qvote.constants`` and
``qvote.logger`` can be imported on their own.
For direct module access, import from submodules:

    from qvote.governance import QuadraticVoting
    from qvote.ledger import InMemoryLedger
    from qvote.clock import ManualClock
    from qvote.origin import Origin
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy module loading."""
    if name == 'QuadraticVoting':
        from .governance import QuadraticVoting
        return QuadraticVoting
    elif name == 'Origin':
        from .origin import Origin
        return Origin
    elif name == 'Vote':
        from .types import Vote
        return Vote
    elif name == 'GovernanceError':
        from .exceptions import GovernanceError
        return GovernanceError
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'qvote' has no attribute {name!r}")

__all__ = ['QuadraticVoting', 'Origin', 'Vote', 'GovernanceError', 'load_config']
