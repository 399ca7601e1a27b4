import json

import pytest

from stickdial.dispatch.mapping_table import (
    ActionMappingTable,
    KeymapLayers,
    MappingTableError,
    layers_from_dict,
    layers_to_dict,
    load_layers,
    modifier_state_name,
    parse_modifier_state,
    save_layers,
    split_action,
)

ENTRIES = {
    ((0,), ()): 'e',
    ((), (3,)): 'r',
    ((1, 0), (2,)): 'enter',
}


def make_layers():
    base = ActionMappingTable(ENTRIES, 4, 2)
    shifted = ActionMappingTable({key: 'shift+' + action for key, action in ENTRIES.items()}, 4, 2)
    return KeymapLayers({frozenset(): base, frozenset({'shift'}): shifted}, ('shift',))


def test_lookup():
    table = ActionMappingTable(ENTRIES, 4, 2)

    assert table[((0,), ())] == 'e'
    assert table.get(((2,), ())) is None
    assert len(table) == 3
    assert sorted(table.actions()) == ['e', 'enter', 'r']


@pytest.mark.parametrize('entries', [
    {((), ()): 'e'},
    {((0, 0), ()): 'e'},
    {((4,), ()): 'e'},
    {((0, 1, 2), ()): 'e'},
    {((-1,), ()): 'e'},
    {((0,), ()): ''},
    {((0,), ()): 'shift+'},
    {((0,), ()): 'e', ((1,), ()): 'e'},
    {(0,): 'e'},
])
def test_invalid_tables_are_rejected(entries):
    with pytest.raises(MappingTableError):
        ActionMappingTable(entries, 4, 2)


def test_table_is_read_only():
    table = ActionMappingTable(ENTRIES, 4, 2)

    with pytest.raises(TypeError):
        table[((2,), ())] = 'x'
    with pytest.raises(TypeError):
        table._table[((2,), ())] = 'x'


def test_action_names():
    assert split_action('ctrl+shift+a') == ['ctrl', 'shift', 'a']
    assert split_action('plus') == ['plus']
    assert modifier_state_name({'shift', 'ctrl'}) == 'ctrl+shift'
    assert modifier_state_name(()) == ''
    assert parse_modifier_state('ctrl+shift') == frozenset({'ctrl', 'shift'})
    assert parse_modifier_state('') == frozenset()


def test_layers():
    layers = make_layers()

    assert layers.base[((0,), ())] == 'e'
    assert layers.table_for({'shift'})[((0,), ())] == 'shift+e'
    assert layers.table_for({'ctrl'}) is None
    assert (layers.sector_count, layers.max_length) == (4, 2)


def test_layers_need_base_and_shared_encoding():
    base = ActionMappingTable(ENTRIES, 4, 2)
    shifted = ActionMappingTable({((5,), ()): 'shift+e'}, 8, 2)

    with pytest.raises(MappingTableError):
        KeymapLayers({frozenset({'shift'}): base})
    with pytest.raises(MappingTableError):
        KeymapLayers({frozenset(): base, frozenset({'shift'}): shifted})


def test_save_and_load(tmp_path):
    path = tmp_path / "keymap.json"
    layers = make_layers()

    save_layers(layers, path)
    loaded = load_layers(path)

    assert dict(loaded.base) == dict(layers.base)
    assert dict(loaded[frozenset({'shift'})]) == dict(layers[frozenset({'shift'})])
    assert loaded.modifiers == ('shift',)

    document = json.loads(path.read_text())
    assert document['version'] == 1
    assert list(document['layers']) == ['', 'shift']


def malformed_documents():
    good = layers_to_dict(make_layers())

    def changed(**kwargs):
        document = json.loads(json.dumps(good))
        document.update(kwargs)
        return document

    first = good['layers']['']
    return [
        [],
        changed(version=2),
        changed(sector_count=0),
        changed(max_length=True),
        changed(modifiers='shift'),
        changed(layers=[]),
        changed(layers={'': 'e'}),
        changed(layers={'shift': first}),
        changed(layers={'': [{'left': [0], 'action': 'e'}]}),
        changed(layers={'': [{'left': ['0'], 'right': [], 'action': 'e'}]}),
        changed(layers={'': [{'left': [9], 'right': [], 'action': 'e'}]}),
        changed(layers={'': [first[0], dict(first[0], action='x')]}),
    ]


@pytest.mark.parametrize('document', malformed_documents())
def test_malformed_documents_are_rejected(document):
    with pytest.raises(MappingTableError):
        layers_from_dict(document)


def test_unreadable_files(tmp_path):
    path = tmp_path / "keymap.json"
    path.write_text('{"version": 1,')

    with pytest.raises(MappingTableError):
        load_layers(path)
    with pytest.raises(MappingTableError):
        load_layers(tmp_path / "missing.json")
