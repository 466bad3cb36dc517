import itertools

from edgematch.pieces import ROTATIONS, Piece, piece_kind, rotate

EDGES = (1, 2, 3, 4)

def test_rotate_identity_and_quarter_turn():
    assert rotate(EDGES, 0) == EDGES
    # west edge comes round to face north
    assert rotate(EDGES, 90) == (4, 1, 2, 3)
    assert rotate(EDGES, 180) == (3, 4, 1, 2)
    assert rotate(EDGES, 270) == (2, 3, 4, 1)

def test_rotate_composes():
    for d1, d2 in itertools.product(ROTATIONS, repeat=2):
        assert rotate(rotate(EDGES, d1), d2) == rotate(EDGES, (d1 + d2) % 360)

def test_four_quarter_turns_return_original():
    e = EDGES
    for _ in range(4):
        e = rotate(e, 90)
    assert e == EDGES
    assert rotate(EDGES, 360) == EDGES

def test_piece_kinds():
    assert Piece(0, (0, 0, 1, 1)).kind == "corner"
    assert Piece(1, (0, 1, 3, 1)).kind == "edge"
    assert Piece(2, (3, 4, 4, 4)).kind == "interior"
    assert piece_kind((0, 0, 0, 1)) == "invalid"

def test_rotated_does_not_mutate():
    p = Piece(7, (0, 1, 5, 2))
    assert p.rotated(90) == (2, 0, 1, 5)
    assert p.edges == (0, 1, 5, 2)
