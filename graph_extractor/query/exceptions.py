class AmbiguousResolutionError(Exception):
    """Raised when a start node lookup matches several nodes under the strict policy.

    Attributes:
        kind: Node kind that was looked up
        name: Name or path used for the lookup
        candidate_ids: Ids of every matching node
    """

    def __init__(self, kind: str, name: str, candidate_ids: list[str]):
        self.kind = kind
        self.name = name
        self.candidate_ids = candidate_ids
        super().__init__(
            f"{len(candidate_ids)} {kind} nodes match '{name}' "
            f"[candidates={', '.join(candidate_ids)}]"
        )
