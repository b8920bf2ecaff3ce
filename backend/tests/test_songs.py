"""Tests for songs, lyrics and chords endpoints"""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.models.event import EventSong
from app.models.song import Chord, Lyric


@pytest.fixture
def song(client: TestClient, band, user_headers):
    response = client.post(
        f"/api/bands/{band['id']}/songs",
        json={"title": "Cuan Grande Es Él", "artist": "Tradicional", "key": "G", "tempo": 72},
        headers=user_headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def lyrics_url(band, song):
    return f"/api/bands/{band['id']}/songs/{song['id']}/lyrics"


def _add_lyric(client, url, headers, position, text="Letra", structure_id=2):
    return client.post(url, json={"structure_id": structure_id, "lyrics": text, "position": position}, headers=headers)


# ============================================================================
# Songs
# ============================================================================


def test_create_song_returns_persisted_entity(song, band):
    assert song["id"] > 0
    assert song["band_id"] == band["id"]
    assert song["song_type"] == "worship"
    assert song["tempo"] == 72


def test_create_song_requires_band_membership(client: TestClient, band, make_user, auth_headers):
    outsider = make_user()
    response = client.post(f"/api/bands/{band['id']}/songs", json={"title": "X"}, headers=auth_headers(outsider))
    assert response.status_code == 403


def test_create_song_invalid_type(client: TestClient, band, user_headers):
    response = client.post(
        f"/api/bands/{band['id']}/songs", json={"title": "X", "song_type": "rock"}, headers=user_headers
    )
    assert response.status_code == 422


def test_list_songs_with_counts(client: TestClient, band, song, lyrics_url, user_headers):
    _add_lyric(client, lyrics_url, user_headers, 1)

    response = client.get(f"/api/bands/{band['id']}/songs", headers=user_headers)
    assert response.status_code == 200
    items = response.json()
    assert items[0]["id"] == song["id"]
    assert items[0]["_count"] == {"events": 0, "lyrics": 1}


def test_get_song_with_ordered_lyrics_and_chords(client: TestClient, band, song, lyrics_url, user_headers):
    first = _add_lyric(client, lyrics_url, user_headers, 1, text="Primera").json()
    _add_lyric(client, lyrics_url, user_headers, 2, text="Segunda", structure_id=4)
    chords_url = f"{lyrics_url}/{first['id']}/chords"
    client.post(chords_url, json={"root_note": "D", "position": 3}, headers=user_headers)
    client.post(chords_url, json={"root_note": "G", "position": 1}, headers=user_headers)

    response = client.get(f"/api/bands/{band['id']}/songs/{song['id']}", headers=user_headers)
    assert response.status_code == 200
    lyrics = response.json()["lyrics"]
    assert [l["lyrics"] for l in lyrics] == ["Primera", "Segunda"]
    assert lyrics[1]["structure"] == {"id": 4, "title": "chorus"}
    assert [c["root_note"] for c in lyrics[0]["chords"]] == ["G", "D"]


def test_song_of_other_band_is_404(client: TestClient, song, user_headers):
    other = client.post("/api/bands", json={"name": "Otra"}, headers=user_headers).json()["band"]
    response = client.get(f"/api/bands/{other['id']}/songs/{song['id']}", headers=user_headers)
    assert response.status_code == 404


def test_update_song(client: TestClient, band, song, user_headers):
    url = f"/api/bands/{band['id']}/songs/{song['id']}"
    response = client.patch(url, json={"key": "A", "song_type": "praise"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["key"] == "A"
    assert response.json()["song_type"] == "praise"
    assert response.json()["title"] == song["title"]


def test_delete_song_cascades(client: TestClient, session: Session, band, song, lyrics_url, user_headers):
    lyric = _add_lyric(client, lyrics_url, user_headers, 1).json()
    client.post(f"{lyrics_url}/{lyric['id']}/chords", json={"root_note": "C", "position": 1}, headers=user_headers)
    event = client.post(
        f"/api/bands/{band['id']}/events", json={"title": "Culto", "date": "2030-01-01T10:00:00"}, headers=user_headers
    ).json()
    client.post(
        f"/api/bands/{band['id']}/events/{event['id']}/songs",
        json={"song_details": [{"song_id": song["id"]}]},
        headers=user_headers,
    )

    response = client.delete(f"/api/bands/{band['id']}/songs/{song['id']}", headers=user_headers)
    assert response.status_code == 204
    assert client.get(f"/api/bands/{band['id']}/songs/{song['id']}", headers=user_headers).status_code == 404
    assert session.exec(select(Lyric)).all() == []
    assert session.exec(select(Chord)).all() == []
    assert session.exec(select(EventSong)).all() == []


def test_paginate_songs(client: TestClient, band, user_headers):
    for title in ("C", "A", "B"):
        client.post(f"/api/bands/{band['id']}/songs", json={"title": title}, headers=user_headers)

    response = client.get("/api/songs", params={"page": 2, "limit": 2}, headers=user_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["page"] == 2
    assert [s["title"] for s in data["data"]] == ["C"]

    assert client.get("/api/songs").status_code == 401


def test_songs_limit_of_trial_plan(client: TestClient, session: Session, band, user_headers):
    from app.models.song import Song

    for n in range(30):
        session.add(Song(band_id=band["id"], title=f"Song {n}"))
    session.commit()

    response = client.post(f"/api/bands/{band['id']}/songs", json={"title": "Una más"}, headers=user_headers)
    assert response.status_code == 403
    assert "canciones" in response.json()["detail"]


# ============================================================================
# Lyrics
# ============================================================================


def test_lyric_position_rules(client: TestClient, lyrics_url, user_headers):
    assert _add_lyric(client, lyrics_url, user_headers, 1).status_code == 201

    response = _add_lyric(client, lyrics_url, user_headers, 1)
    assert response.status_code == 400
    assert response.json()["detail"] == "Position already taken"

    assert _add_lyric(client, lyrics_url, user_headers, 5).status_code == 400
    assert _add_lyric(client, lyrics_url, user_headers, 2).status_code == 201


def test_update_lyric_position_conflict(client: TestClient, lyrics_url, user_headers):
    first = _add_lyric(client, lyrics_url, user_headers, 1).json()
    _add_lyric(client, lyrics_url, user_headers, 2)

    response = client.patch(f"{lyrics_url}/{first['id']}", json={"position": 2}, headers=user_headers)
    assert response.status_code == 400

    response = client.patch(f"{lyrics_url}/{first['id']}", json={"lyrics": "Nueva"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["lyrics"] == "Nueva"


def test_bulk_reorder_lyrics(client: TestClient, lyrics_url, user_headers):
    first = _add_lyric(client, lyrics_url, user_headers, 1, text="Uno").json()
    second = _add_lyric(client, lyrics_url, user_headers, 2, text="Dos").json()

    response = client.patch(
        lyrics_url,
        json=[{"id": first["id"], "position": 2}, {"id": second["id"], "position": 1}],
        headers=user_headers,
    )
    assert response.status_code == 200
    assert [l["lyrics"] for l in response.json()] == ["Dos", "Uno"]

    response = client.patch(lyrics_url, json=[{"id": first["id"], "position": 1}], headers=user_headers)
    assert response.status_code == 400


def test_delete_lyric_removes_chords(client: TestClient, session: Session, lyrics_url, user_headers):
    lyric = _add_lyric(client, lyrics_url, user_headers, 1).json()
    client.post(f"{lyrics_url}/{lyric['id']}/chords", json={"root_note": "C", "position": 1}, headers=user_headers)

    response = client.delete(f"{lyrics_url}/{lyric['id']}", headers=user_headers)
    assert response.status_code == 200
    assert client.get(f"{lyrics_url}/{lyric['id']}", headers=user_headers).status_code == 404
    assert session.exec(select(Chord)).all() == []


def test_remove_all_lyrics(client: TestClient, lyrics_url, user_headers):
    _add_lyric(client, lyrics_url, user_headers, 1)
    _add_lyric(client, lyrics_url, user_headers, 2)

    response = client.delete(f"{lyrics_url}/remove-all", headers=user_headers)
    assert response.status_code == 200
    assert client.get(lyrics_url, headers=user_headers).json() == []


def test_parse_text_appends_after_existing(client: TestClient, lyrics_url, user_headers):
    _add_lyric(client, lyrics_url, user_headers, 1, text="Existente")

    content = "(Coro)\nG        D        Em\nCuan grande es mi Dios\nSanto, santo, santo"
    response = client.post(f"{lyrics_url}/parse-text", json={"text_content": content}, headers=user_headers)
    assert response.status_code == 201
    assert response.json()["lyrics_created"] == 2
    assert response.json()["chords_created"] == 3

    lyrics = client.get(lyrics_url, headers=user_headers).json()
    assert [(l["position"], l["lyrics"]) for l in lyrics] == [
        (1, "Existente"),
        (2, "Cuan grande es mi Dios"),
        (3, "Santo Santo Santo"),
    ]
    assert lyrics[1]["structure"]["id"] == 4
    assert [(c["root_note"], c["chord_quality"], c["position"]) for c in lyrics[1]["chords"]] == [
        ("G", "", 1),
        ("D", "", 3),
        ("E", "m", 5),
    ]


def test_parse_text_too_many_chords(client: TestClient, lyrics_url, user_headers):
    response = client.post(
        f"{lyrics_url}/parse-text", json={"text_content": "C D E F G A\nLetra"}, headers=user_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Validation failed")


def test_parse_single_lyric_replaces_chords(client: TestClient, lyrics_url, user_headers):
    lyric = _add_lyric(client, lyrics_url, user_headers, 1, text="Vieja", structure_id=4).json()
    client.post(f"{lyrics_url}/{lyric['id']}/chords", json={"root_note": "C", "position": 5}, headers=user_headers)

    response = client.patch(
        f"{lyrics_url}/{lyric['id']}/parse",
        json={"text_content": "G    D\ncuan grande es"},
        headers=user_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["lyrics"] == "Cuan grande es"
    assert data["structure"]["id"] == 4
    assert [(c["root_note"], c["position"]) for c in data["chords"]] == [("G", 1), ("D", 3)]


def test_normalize_lyrics(client: TestClient, lyrics_url, user_headers):
    lyric = _add_lyric(client, lyrics_url, user_headers, 1, text="SANTO, SANTO!").json()

    response = client.post(
        f"{lyrics_url}/normalize", json={"lyric_ids": [lyric["id"], 999]}, headers=user_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] == [lyric["id"]]
    assert data["failed"] == []
    assert data["not_found"] == [999]
    assert client.get(f"{lyrics_url}/{lyric['id']}", headers=user_headers).json()["lyrics"] == "Santo Santo!"


# ============================================================================
# Chords
# ============================================================================


def test_chord_rules(client: TestClient, lyrics_url, user_headers):
    lyric = _add_lyric(client, lyrics_url, user_headers, 1).json()
    url = f"{lyrics_url}/{lyric['id']}/chords"

    response = client.post(
        url,
        json={"root_note": "D", "chord_quality": "m7", "slash_chord": "C", "position": 0},
        headers=user_headers,
    )
    assert response.status_code == 201
    assert response.json()["chord_quality"] == "m7"

    response = client.post(url, json={"root_note": "E", "position": 0}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Position already exists"

    for position in (1, 2, 3, 4):
        assert client.post(url, json={"root_note": "E", "position": position}, headers=user_headers).status_code == 201

    response = client.post(url, json={"root_note": "E", "position": 5}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Maximum 5 chords allowed"


@pytest.mark.parametrize(
    "payload",
    [
        {"root_note": "H", "position": 1},
        {"root_note": "Db", "position": 1},
        {"root_note": "C", "chord_quality": "weird", "position": 1},
        {"root_note": "C", "position": 6},
    ],
)
def test_chord_validation(client: TestClient, lyrics_url, user_headers, payload):
    lyric = _add_lyric(client, lyrics_url, user_headers, 1).json()
    response = client.post(f"{lyrics_url}/{lyric['id']}/chords", json=payload, headers=user_headers)
    assert response.status_code == 422


def test_update_and_delete_chord(client: TestClient, lyrics_url, user_headers):
    lyric = _add_lyric(client, lyrics_url, user_headers, 1).json()
    url = f"{lyrics_url}/{lyric['id']}/chords"
    first = client.post(url, json={"root_note": "C", "position": 1}, headers=user_headers).json()
    client.post(url, json={"root_note": "G", "position": 2}, headers=user_headers)

    assert client.patch(f"{url}/{first['id']}", json={"position": 2}, headers=user_headers).status_code == 400

    response = client.patch(f"{url}/{first['id']}", json={"chord_quality": "maj7", "position": 3}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["chord_quality"] == "maj7"
    assert [c["position"] for c in client.get(url, headers=user_headers).json()] == [2, 3]

    assert client.delete(f"{url}/{first['id']}", headers=user_headers).status_code == 200
    assert client.get(f"{url}/{first['id']}", headers=user_headers).status_code == 404
