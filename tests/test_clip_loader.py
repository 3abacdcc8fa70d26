"""Tests for JSON clip descriptors"""

import json

import pytest

from src.animexport.animation.animation import TangentMode
from src.animexport.loaders.clip_loader import ClipDefinition, ClipLoader


def _walk_payload():
    return {
        "clips": [
            {
                "name": "Walk",
                "loop": True,
                "bindings": [
                    {"path": "Armature/Hips", "property": "m_LocalPosition.x",
                     "keys": [[0.0, 0.0], [1.0, 1.0, "constant"]]},
                    {"path": "Face", "property": "blendShape.Smile", "tangent": "linear",
                     "keys": [{"time": 0.5, "value": 50.0}]},
                ],
            },
            {"name": "Idle", "bindings": []},
        ]
    }


def test_parse_clips():
    """Clip files hold named clips with per-axis bindings"""
    definitions = ClipLoader().parse(_walk_payload())

    assert [d.name for d in definitions] == ["Walk", "Idle"]
    walk = definitions[0].instantiate()
    assert len(walk.bindings) == 2

    position = walk.bindings[0]
    assert position.path == "Armature/Hips"
    assert [(s.time, s.value) for s in position.samples] == [(0.0, 0.0), (1.0, 1.0)]
    assert position.samples[0].tangent_mode == TangentMode.FREE
    assert position.samples[1].tangent_mode == TangentMode.CONSTANT

    smile = walk.bindings[1]
    assert smile.samples[0].tangent_mode == TangentMode.LINEAR
    assert walk.duration == 1.0


def test_unknown_fields_become_metadata():
    """Extra clip fields are kept as metadata"""
    definition = ClipDefinition.from_dict(_walk_payload()["clips"][0])
    assert definition.metadata == {"loop": True}


def test_single_clip_object_named_after_file(tmp_path):
    """A bare clip object is accepted and named after its file"""
    path = tmp_path / "wave.json"
    path.write_text(json.dumps({"bindings": [
        {"path": "", "property": "m_LocalScale.y", "keys": [[0.0, 1.0]]}
    ]}), encoding="utf-8")

    clips = ClipLoader().load_clips(path)

    assert len(clips) == 1
    assert clips[0].name == "wave"
    assert clips[0].bindings[0].property_name == "m_LocalScale.y"


def test_missing_file():
    """Missing descriptors raise FileNotFoundError"""
    with pytest.raises(FileNotFoundError):
        ClipLoader().load_clips("/nonexistent/clips.json")


@pytest.mark.parametrize("payload", [
    [],
    {"clips": {}},
    {"clips": [{"name": "A", "bindings": [{"path": "x"}]}]},
    {"clips": [{"name": "A", "bindings": [{"property": "m_LocalPosition.x", "keys": [[0.0]]}]}]},
    {"clips": [{"name": "A", "bindings": [{"property": "m_LocalPosition.x", "keys": [[-1.0, 0.0]]}]}]},
    {"clips": [{"name": "A", "bindings": [{"property": "m_LocalPosition.x", "keys": [[0.0, 0.0, "bouncy"]]}]}]},
    {"clips": [{"name": "A"}, {"name": "A"}]},
])
def test_invalid_payloads(payload):
    """Malformed descriptors raise ValueError"""
    with pytest.raises(ValueError):
        ClipLoader().parse(payload)
