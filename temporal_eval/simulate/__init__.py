"""
Temporal replay evaluation (FINAL / FROZEN)

Simulates how a recommender would have behaved had it been deployed over
the historical rating stream.

Core doctrine:
- There is exactly ONE clock: the ratings' own timestamps.
- A prediction for a rating at time t never observes data at or after t.
- The model is rebuilt only when it is stale (rebuild_period), never per event.
- Accuracy is accumulated online, never by rescanning history.

Layer responsibilities:
- core      : defines WHAT is observable and HOW state evolves
              (dataset windows, rebuild schedule, running RMSE, records)
- ranking   : candidate sampling + rank lookup
- evaluator : the replay loop
- sinks     : per-event table + diagnostic JSON Lines
- pipeline  : load → replay → result
"""
