"""
_sequence.py
============
Sequence records attached to tree leaves.

``FastaItem`` holds one FASTA entry (header line and residues) and,
optionally, a per-residue disorder probability vector produced by an
external predictor.  The tree code only ever calls the small interface
below; anything with the same attributes can be attached to a leaf.

  .sequence                      residue string
  .contains(pattern)             literal substring test
  .accession                     short identifier for query strings
  .header_row                    '>' + header
  .sequence_rows(width)          residues wrapped into rows
  .has_disorder_probs            probability vector present?
  .has_disordered_pattern(p, t)  some occurrence of p fully above t?
"""

from typing import List, Optional

import numpy as np

from ._utils import split_header_fields


FASTA_ROW_WIDTH = 60


class FastaItem:
    """
    One FASTA record with optional disorder probabilities.

    Attributes
    ----------
    header : str
        Header text without the leading '>'.
    sequence : str
        Residues, with whitespace removed.
    disorder_probs : float64[len(sequence)] or None
        Per-residue disorder probability in [0, 1].
    """

    def __init__(
        self,
        header: str,
        sequence: str,
        disorder_probs=None,
    ) -> None:
        """
        Parameters
        ----------
        header : str
            Header line; a leading '>' is stripped.
        sequence : str
            Residues; embedded whitespace and newlines are removed.
        disorder_probs : array-like or None
            One probability per residue.

        Raises
        ------
        ValueError
            If *disorder_probs* is not one-dimensional or its length differs
            from the sequence length.
        """
        header = header.strip()
        if header.startswith(">"):
            header = header[1:]
        self.header = header
        self.sequence = "".join(sequence.split())

        if disorder_probs is None:
            self.disorder_probs: Optional[np.ndarray] = None
        else:
            probs = np.asarray(disorder_probs, dtype=np.float64)
            if probs.ndim != 1 or probs.shape[0] != len(self.sequence):
                raise ValueError(
                    f"disorder_probs must have one value per residue; got "
                    f"shape {probs.shape} for a sequence of length "
                    f"{len(self.sequence)}."
                )
            self.disorder_probs = probs

    def __repr__(self) -> str:
        return f"FastaItem({self.header!r}, {len(self.sequence)} residues)"

    def __len__(self) -> int:
        return len(self.sequence)

    # ------------------------------------------------------------------ #
    # Identification                                                       #
    # ------------------------------------------------------------------ #

    @property
    def accession(self) -> str:
        """
        Accession number of the record.

        For UniProt-style headers (``sp|P12345|...``) this is the second
        field; otherwise it is the first whitespace-delimited token.
        """
        token = self.header.split()[0] if self.header.split() else ""
        fields = split_header_fields(token)
        if len(fields) >= 2 and fields[0] in ("sp", "tr"):
            return fields[1]
        return token

    @property
    def header_row(self) -> str:
        return ">" + self.header

    def sequence_rows(self, width: int = FASTA_ROW_WIDTH) -> List[str]:
        """
        Return the residues wrapped into rows of at most *width* characters.

        An empty sequence yields no rows.

        Raises
        ------
        ValueError
            If *width* is not positive.
        """
        if width <= 0:
            raise ValueError(f"Row width must be positive, got {width}.")
        seq = self.sequence
        return [seq[i : i + width] for i in range(0, len(seq), width)]

    def to_fasta(self, width: int = FASTA_ROW_WIDTH) -> str:
        """Return the record as FASTA text, each line newline-terminated."""
        lines = [self.header_row] + self.sequence_rows(width)
        return "".join(line + "\n" for line in lines)

    # ------------------------------------------------------------------ #
    # Pattern queries                                                      #
    # ------------------------------------------------------------------ #

    def contains(self, pattern: str) -> bool:
        """True if *pattern* occurs in the sequence as a literal substring."""
        return pattern in self.sequence

    @property
    def has_disorder_probs(self) -> bool:
        return self.disorder_probs is not None

    def pattern_positions(self, pattern: str) -> List[int]:
        """
        Start positions of every occurrence of *pattern*, overlapping
        occurrences included.  An empty pattern has no occurrences.
        """
        if not pattern:
            return []
        positions = []
        start = self.sequence.find(pattern)
        while start != -1:
            positions.append(start)
            start = self.sequence.find(pattern, start + 1)
        return positions

    def has_disordered_pattern(self, pattern: str, threshold: float) -> bool:
        """
        True if at least one occurrence of *pattern* lies entirely in a
        disordered region, i.e. every residue of the occurrence has a
        disorder probability strictly greater than *threshold*.

        Records without disorder probabilities never match.
        """
        if self.disorder_probs is None:
            return False
        positions = self.pattern_positions(pattern)
        if not positions:
            return False

        # Row i of the window matrix covers the residues of occurrence i.
        window = np.asarray(positions)[:, None] + np.arange(len(pattern))
        above = self.disorder_probs[window] > threshold
        return bool(np.any(np.all(above, axis=1)))


def parse_fasta(fasta_text: str) -> List[FastaItem]:
    """
    Parse FASTA text into ``FastaItem`` records, in input order.

    Blank lines are ignored; sequence lines are concatenated.

    Raises
    ------
    ValueError
        If sequence data appears before the first '>' header.

    Examples
    --------
    >>> [r.header for r in parse_fasta('>a\\nMK\\nLV\\n>b\\nGG\\n')]
    ['a', 'b']
    """
    records = []
    header = None
    rows: List[str] = []
    for lineno, line in enumerate(fasta_text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        if line.startswith(">"):
            if header is not None:
                records.append(FastaItem(header, "".join(rows)))
            header = line
            rows = []
        elif header is None:
            raise ValueError(f"Sequence data before the first header on line {lineno}.")
        else:
            rows.append(line)
    if header is not None:
        records.append(FastaItem(header, "".join(rows)))
    return records
