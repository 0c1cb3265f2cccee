import pytest

from tareas.rides import AdjacencyList, main, parse_data, read_data

SAMPLE = "5 4 2\n0 1\n0 2\n1 3\n3 4\n1 4\n"


def test_parse_counts():
    graph = parse_data(SAMPLE)
    assert (graph.vertex_count, graph.edge_count, graph.uber_count) == (5, 4, 2)


def test_parse_neighbours_in_order():
    graph = parse_data(SAMPLE)
    assert graph.neighbours(0) == (1, 2)
    assert graph.neighbours(1) == (3,)
    assert graph.neighbours(2) == ()
    assert graph.neighbours(3) == (4,)


def test_parse_ubers():
    assert parse_data(SAMPLE).uber_locations() == (1, 4)


def test_add_edge_out_of_range():
    graph = AdjacencyList(3, 1, 0)
    with pytest.raises(IndexError):
        graph.add_edge(3, 0)


def test_add_uber_capacity():
    graph = AdjacencyList(3, 0, 1)
    graph.add_uber(2)
    with pytest.raises(ValueError):
        graph.add_uber(1)
    assert graph.uber_locations() == (2,)


def test_neighbours_out_of_range():
    with pytest.raises(IndexError):
        AdjacencyList(2).neighbours(5)


def test_bad_header():
    with pytest.raises(ValueError):
        parse_data("5 x 2\n")


def test_missing_uber_line():
    with pytest.raises(ValueError):
        parse_data("2 1 2\n0 1\n")


def test_read_data(tmp_path):
    path = tmp_path / "data.txt"
    path.write_text(SAMPLE)
    graph = read_data(path)
    assert graph.neighbours(0) == parse_data(SAMPLE).neighbours(0)
    assert graph.uber_locations() == (1, 4)


def test_main_output(tmp_path, capsys):
    path = tmp_path / "data.txt"
    path.write_text(SAMPLE)
    assert main([str(path)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[:2] == ["1", "4"]
    assert "Vecino del nodo 0:2" in lines
    assert len(lines) == 2 + 4