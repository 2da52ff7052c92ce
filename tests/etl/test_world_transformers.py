from src.etl.transformers.challenges import ChallengeTransformer
from src.etl.transformers.fields import (
    CHALLENGE_FIELDS,
    GROUP_FIELDS,
    WORLD_FIELDS,
    WORLD_POST_GUIDE_FIELDS,
)
from src.etl.transformers.groups import GROUP_BADGE, GroupTransformer
from src.etl.transformers.posting_guides import WorldPostGuideTransformer
from src.etl.transformers.worlds import DEFAULT_MAIN_ASSETS, WorldTransformer


def test_world_transform_uses_default_assets(attachment):
    """
    [GREEN]
    월드 레코드 변환 시 비어있는 메인 에셋은 기본 에셋으로 채워집니다.
    """
    raw = {
        "id": "recWorld1",
        WORLD_FIELDS["title"]: "  바다 월드 ",
        WORLD_FIELDS["creators"]: ["문어", " "],
        WORLD_FIELDS["groups"]: ["recG1", "recG2"],
        WORLD_FIELDS["intro_media"]: [attachment],
        WORLD_FIELDS["asset_front"]: [{**attachment, "url": "https://cdn.test/front.png"}],
        "월드 핵심 키워드 A": "바다",
        "월드 핵심 키워드 C": "물고기",
    }

    entity = WorldTransformer().transform(raw)

    assert entity["worldIdx"] == "recWorld1"
    assert entity["title"] == "바다 월드"
    assert entity["creatorName"] == ["문어"]
    assert entity["groupIdxs"] == ["recG1", "recG2"]
    assert entity["keywords"] == ["바다", "물고기"]
    assert entity["description"] is None
    assert entity["worldImage"]["defaultUrl"] == attachment["url"]
    assert entity["worldImage"]["mainAssets"] == {
        "back": DEFAULT_MAIN_ASSETS["back"],
        "middle": DEFAULT_MAIN_ASSETS["middle"],
        "front": "https://cdn.test/front.png",
    }


def test_world_without_title_is_excluded():
    assert WorldTransformer().transform({"id": "recWorld2"}) is None


def test_group_transform():
    raw = {
        "id": "recGroup1",
        GROUP_FIELDS["title"]: "첫 번째 그룹",
        GROUP_FIELDS["order"]: 1,
        GROUP_FIELDS["open_chats"]: ["recOpen1", "recOpen2"],
        GROUP_FIELDS["challenges"]: ["recC1", "", "recC2"],
    }

    entity = GroupTransformer().transform(raw)

    assert entity == {
        "title": "첫 번째 그룹",
        "groupIdx": "recGroup1",
        "order": 1,
        "openChatIdxs": "recOpen1",
        "badge": GROUP_BADGE,
        "challengeIdxs": ["recC1", "recC2"],
    }


def test_challenge_transform(attachment):
    """
    [GREEN]
    챌린지 소개 레코드: 난이도 압축, 미디어 블록, 체크리스트 수집을 테스트합니다.
    """
    raw = {
        "id": "recChallenge1",
        CHALLENGE_FIELDS["title"]: "물고기 그리기",
        CHALLENGE_FIELDS["description"]: "바다 친구를 그려요",
        CHALLENGE_FIELDS["level"]: ["2"],
        CHALLENGE_FIELDS["thumbnail"]: [attachment],
        CHALLENGE_FIELDS["category_main"]: "그리기",
        CHALLENGE_FIELDS["activity_guides"]: ["recA1"],
        "재료/상태 유저 체크리스트 A": "색연필",
        "재료/상태 유저 체크리스트 C": "종이",
    }

    entity = ChallengeTransformer().transform(raw)

    assert entity["challengeIdx"] == "recChallenge1"
    assert entity["level"] == 1
    assert entity["media"]["type"] == "image"
    assert entity["media"]["thumbnail"]["tiny"] == "https://dl.airtable.com/t/small.jpg"
    assert entity["categoryMain"] == "그리기"
    assert entity["categorySub"] is None
    assert entity["checklist"] == ["색연필", "종이"]
    assert entity["activityGuideIdxs"] == ["recA1"]


def test_challenge_without_description_is_excluded():
    raw = {"id": "recChallenge2", CHALLENGE_FIELDS["title"]: "제목만 있음"}

    assert ChallengeTransformer().transform(raw) is None


def test_world_post_guide_optional_fields():
    """
    [GREEN]
    aiPrompt와 guides는 값이 있을 때만 포함됩니다.
    """
    f = WORLD_POST_GUIDE_FIELDS
    transformer = WorldPostGuideTransformer()

    minimal = transformer.transform({"id": "recP1", f["challenge"]: ["recC1"]})
    assert minimal == {"challengeId": "recC1"}

    full = transformer.transform(
        {
            "id": "recP2",
            f["challenge"]: "recC2",
            f["ai_prompt"]: "사진을 보여줘",
            f["desc_guide"]: "설명해줘",
        }
    )
    assert full == {
        "challengeId": "recC2",
        "aiPrompt": "사진을 보여줘",
        "guides": {"mediaGuide": None, "descGuide": "설명해줘"},
    }

    assert transformer.transform({"id": "recP3"}) is None
