"""
Boolean satisfiability core

A small conflict-driven clause learning solver tailored to dependency
resolution. Variables are positive integers, literals are `+v` / `-v`.

Two properties matter to the resolver and differ from a general purpose
solver:

  * Decisions are deterministic and minimal. Unassigned variables are taken
    to be false. The solver only decides when a clause cannot be satisfied
    that way, i.e. when all its negative literals are false and none of its
    literals is true, and then sets the lowest numbered unassigned positive
    literal of that clause to true. Callers number variables in order of
    preference, so the preferred candidate is always tried first.

  * Every learned clause remembers which input clauses it was derived
    from. When the problem is unsatisfiable the input clauses behind the
    final conflict are reported as the explanation.
"""

from typing import Dict, FrozenSet, List, Optional, Sequence, Set


class SolveResult:
    """Outcome of `Solver.solve`

    On success `model` is the set of variables assigned true. Otherwise
    `core` lists the ids of input clauses that together cannot be
    satisfied.
    """

    def __init__(self, model: Optional[Set[int]] = None, core: Optional[List[int]] = None) -> None:
        self.model = model
        self.core = core

    @property
    def satisfiable(self) -> bool:
        return self.model is not None

    def __repr__(self) -> str:
        return f"SolveResult(model={self.model}, core={self.core})"


# pylint: disable=too-many-instance-attributes
class Solver:
    def __init__(self, nvars: int) -> None:
        self.nvars = nvars
        self.clauses: List[List[int]] = []
        self.origins: List[FrozenSet[int]] = []
        self.num_input = 0
        # literal -> ids of clauses containing it
        self._occurs: Dict[int, List[int]] = {}
        # clauses without negative literals, always checked for decisions
        self._positive: List[int] = []
        self._units: List[int] = []
        self._empty: Optional[int] = None

        self._value: List[Optional[bool]] = [None] * (nvars + 1)
        self._level: List[int] = [0] * (nvars + 1)
        self._reason: List[Optional[int]] = [None] * (nvars + 1)
        self._trail: List[int] = []
        self._trail_lim: List[int] = []
        self._qhead = 0

    def add_clause(self, literals: Sequence[int]) -> int:
        """Add an input clause and return its id

        Duplicate literals are dropped; a clause containing a literal and
        its negation is always satisfied and not registered at all.
        """
        if self.num_input != len(self.clauses):
            raise RuntimeError("input clauses must be added before solving")
        cid = len(self.clauses)
        lits = list(dict.fromkeys(literals))
        for lit in lits:
            if lit == 0 or abs(lit) > self.nvars:
                raise ValueError(f"invalid literal {lit}")
        self.clauses.append(lits)
        self.origins.append(frozenset((cid,)))
        self.num_input += 1

        if any(-lit in lits for lit in lits):
            return cid
        self._register(cid)
        if not lits and self._empty is None:
            self._empty = cid
        elif len(lits) == 1:
            self._units.append(cid)
        return cid

    def _register(self, cid: int) -> None:
        lits = self.clauses[cid]
        for lit in lits:
            self._occurs.setdefault(lit, []).append(cid)
        if all(lit > 0 for lit in lits):
            self._positive.append(cid)

    def _lit_value(self, lit: int) -> Optional[bool]:
        v = self._value[abs(lit)]
        if v is None:
            return None
        return v if lit > 0 else not v

    def _assign(self, lit: int, reason: Optional[int]) -> None:
        v = abs(lit)
        self._value[v] = lit > 0
        self._level[v] = len(self._trail_lim)
        self._reason[v] = reason
        self._trail.append(lit)

    def _propagate(self) -> Optional[int]:
        """Unit propagation; returns the id of a falsified clause or `None`"""
        while self._qhead < len(self._trail):
            lit = self._trail[self._qhead]
            self._qhead += 1
            for cid in self._occurs.get(-lit, ()):
                unassigned = None
                count = 0
                satisfied = False
                for q in self.clauses[cid]:
                    val = self._lit_value(q)
                    if val:
                        satisfied = True
                        break
                    if val is None:
                        count += 1
                        unassigned = q
                        if count > 1:
                            break
                if satisfied or count > 1:
                    continue
                if count == 0:
                    return cid
                self._assign(unassigned, cid)
        return None

    def _backtrack(self, level: int) -> None:
        if len(self._trail_lim) <= level:
            return
        start = self._trail_lim[level]
        for lit in self._trail[start:]:
            v = abs(lit)
            self._value[v] = None
            self._reason[v] = None
        del self._trail[start:]
        del self._trail_lim[level:]
        self._qhead = len(self._trail)

    def _level0_origins(self, variables) -> Set[int]:
        """Input clauses behind the level 0 assignments of `variables`"""
        origins: Set[int] = set()
        stack = list(variables)
        done: Set[int] = set()
        while stack:
            v = stack.pop()
            if v in done:
                continue
            done.add(v)
            reason = self._reason[v]
            if reason is None:
                continue
            origins |= self.origins[reason]
            stack.extend(abs(q) for q in self.clauses[reason] if abs(q) != v)
        return origins

    def _analyze(self, conflict: int):
        """First-UIP conflict analysis

        Returns the learned clause (asserting literal first), the level to
        jump back to and the input clauses it was derived from.
        """
        current = len(self._trail_lim)
        seen: Set[int] = set()
        level0: Set[int] = set()
        learnt: List[int] = []
        origins: Set[int] = set(self.origins[conflict])
        counter = 0
        lit = None
        idx = len(self._trail) - 1
        clause = self.clauses[conflict]

        while True:
            for q in clause:
                if lit is not None and q == lit:
                    continue
                v = abs(q)
                if v in seen:
                    continue
                seen.add(v)
                if self._level[v] == 0:
                    level0.add(v)
                elif self._level[v] == current:
                    counter += 1
                else:
                    learnt.append(q)

            while abs(self._trail[idx]) not in seen:
                idx -= 1
            lit = self._trail[idx]
            idx -= 1
            counter -= 1
            if counter == 0:
                break
            reason = self._reason[abs(lit)]
            clause = self.clauses[reason]
            origins |= self.origins[reason]

        learnt.insert(0, -lit)
        origins |= self._level0_origins(level0)
        backjump = max((self._level[abs(q)] for q in learnt[1:]), default=0)
        return learnt, backjump, frozenset(origins)

    def _needs_decision(self, cid: int) -> Optional[int]:
        """The literal to decide on if `cid` is not satisfied by leaving
        everything unassigned false, otherwise `None`"""
        best = None
        for q in self.clauses[cid]:
            val = self._lit_value(q)
            if val:
                return None
            if val is None:
                if q < 0:
                    return None
                if best is None or q < best:
                    best = q
        return best

    def _pick(self) -> Optional[int]:
        for cid in self._positive:
            lit = self._needs_decision(cid)
            if lit is not None:
                return lit
        for assigned in self._trail:
            if assigned < 0:
                continue
            for cid in self._occurs.get(-assigned, ()):
                lit = self._needs_decision(cid)
                if lit is not None:
                    return lit
        return None

    def _core(self, conflict: int) -> List[int]:
        origins = set(self.origins[conflict])
        origins |= self._level0_origins(abs(q) for q in self.clauses[conflict])
        return sorted(origins)

    def solve(self) -> SolveResult:
        if self._empty is not None:
            return SolveResult(core=[self._empty])

        for cid in self._units:
            lit = self.clauses[cid][0]
            val = self._lit_value(lit)
            if val is None:
                self._assign(lit, cid)
            elif not val:
                return SolveResult(core=self._core(cid))

        while True:
            conflict = self._propagate()
            if conflict is not None:
                if not self._trail_lim:
                    return SolveResult(core=self._core(conflict))
                learnt, backjump, origins = self._analyze(conflict)
                self._backtrack(backjump)
                cid = len(self.clauses)
                self.clauses.append(learnt)
                self.origins.append(origins)
                self._register(cid)
                self._assign(learnt[0], cid)
                continue

            lit = self._pick()
            if lit is None:
                return SolveResult(model={v for v in range(1, self.nvars + 1) if self._value[v]})
            self._trail_lim.append(len(self._trail))
            self._assign(lit, None)
