"""
Stakeduel - Wagered Rock/Paper/Scissors session engine

A single two-player session that holds custody of the stakes and
settles itself. The engine provides:
- Packed session storage
- Create / submit-move / terminate transitions
- Reentrancy-safe payout of the pooled stakes
- Deadline-based forced termination
"""

__version__ = "0.1.0"
