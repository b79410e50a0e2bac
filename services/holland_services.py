"""RIASEC (Holland) inventory scoring.

Twenty-four forced-choice items, four per dimension, each rated 0-5. Scores are
plain sums; the ranked profile is a stable sort so ties fall back to the
R, I, A, S, E, C declaration order.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Sequence, Tuple

from schemas import HollandResult, MajorRecommendation, TopType, TypeScore

HOLLAND_CODES: Tuple[str, ...] = ("R", "I", "A", "S", "E", "C")
ANSWER_COUNT = 24
MIN_RATING = 0
MAX_RATING = 5
ITEMS_PER_DIMENSION = 4
MAX_DIMENSION_SCORE = ITEMS_PER_DIMENSION * MAX_RATING  # 20

QUESTION_MAPPING: Mapping[str, Tuple[int, ...]] = MappingProxyType({
    "R": (0, 1, 2, 3),
    "I": (4, 5, 6, 7),
    "A": (8, 9, 10, 11),
    "S": (12, 13, 14, 15),
    "E": (16, 17, 18, 19),
    "C": (20, 21, 22, 23),
})


@dataclass(frozen=True)
class HollandType:
    code: str
    name: str
    description: str
    traits: Tuple[str, ...]
    careers: str
    environment: str
    suggestion: str
    majors: Tuple[Tuple[str, int, str], ...]


HOLLAND_TYPES: Mapping[str, HollandType] = MappingProxyType({
    "R": HollandType(
        code="R",
        name="现实型",
        description="喜欢动手操作、使用工具、机械设备",
        traits=("动手能力强", "喜欢使用工具", "务实稳重", "偏好具体工作"),
        careers="工程师、技师、建筑师",
        environment="技术性、实用性强的工作环境",
        suggestion="发展实际操作技能，关注新技术应用",
        majors=(
            ("机械工程", 95, "与动手能力和技术思维高度匹配"),
            ("土木工程", 90, "实用性强，注重实际应用"),
            ("电气工程", 88, "技术性强，有明确的实用价值"),
        ),
    ),
    "I": HollandType(
        code="I",
        name="研究型",
        description="喜欢思考、分析、研究复杂问题",
        traits=("逻辑思维强", "喜欢研究分析", "独立思考", "追求真理"),
        careers="科研人员、医生、分析师",
        environment="研究性、学术性的工作环境",
        suggestion="加强理论学习，培养研究方法论",
        majors=(
            ("计算机科学", 95, "逻辑思维和研究能力的完美结合"),
            ("数学", 90, "纯理论研究，符合研究型特质"),
            ("物理学", 88, "基础科学研究，追求真理"),
        ),
    ),
    "A": HollandType(
        code="A",
        name="艺术型",
        description="喜欢创作、想象、表达艺术想法",
        traits=("创造力强", "想象力丰富", "表达能力好", "追求美感"),
        careers="设计师、艺术家、作家",
        environment="创意性、自由度高的工作环境",
        suggestion="发挥创意潜能，培养审美素养",
        majors=(
            ("艺术设计", 95, "创造力和美感的直接体现"),
            ("广告学", 90, "创意表达与商业结合"),
            ("建筑学", 88, "艺术性与实用性并重"),
        ),
    ),
    "S": HollandType(
        code="S",
        name="社会型",
        description="喜欢帮助他人、与人交往沟通",
        traits=("人际交往好", "乐于助人", "有同理心", "关注他人需求"),
        careers="教师、心理咨询师、社工",
        environment="社交性、服务性的工作环境",
        suggestion="提升沟通技巧，发展服务意识",
        majors=(
            ("心理学", 95, "帮助他人，深入理解人性"),
            ("教育学", 90, "服务社会，培养人才"),
            ("社会工作", 88, "直接服务社会弱势群体"),
        ),
    ),
    "E": HollandType(
        code="E",
        name="企业型",
        description="喜欢领导、组织、追求成就",
        traits=("领导能力强", "善于影响他人", "目标导向", "勇于冒险"),
        careers="管理者、销售员、企业家",
        environment="竞争性、管理性的工作环境",
        suggestion="培养领导能力，学习商业思维",
        majors=(
            ("工商管理", 95, "领导能力和商业思维的结合"),
            ("市场营销", 90, "影响他人，推动商业发展"),
            ("国际贸易", 88, "全球视野，商业冒险精神"),
        ),
    ),
    "C": HollandType(
        code="C",
        name="常规型",
        description="喜欢有序、规范、按规则做事",
        traits=("组织能力强", "注重细节", "喜欢规则", "追求秩序"),
        careers="会计师、秘书、图书管理员",
        environment="结构化、规范性的工作环境",
        suggestion="强化组织能力，提高工作效率",
        majors=(
            ("会计学", 95, "规范性强，注重细节和准确性"),
            ("法学", 90, "规则导向，逻辑严密"),
            ("行政管理", 88, "组织协调，规范管理"),
        ),
    ),
})


def _rating(value: Any) -> int:
    # bool is an int subclass; a true/false answer is not a rating.
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        return 0
    if value < MIN_RATING or value > MAX_RATING:
        return 0
    return value


def score_answers(answers: Sequence[Any]) -> Dict[str, int]:
    """Sum each dimension's four items. Missing or out-of-range items count as 0."""
    scores: Dict[str, int] = {}
    for code in HOLLAND_CODES:
        scores[code] = sum(
            _rating(answers[idx]) if idx < len(answers) else 0
            for idx in QUESTION_MAPPING[code]
        )
    return scores


def percentage(score: int) -> int:
    return round(score / MAX_DIMENSION_SCORE * 100)


def rank_scores(scores: Mapping[str, int]) -> HollandResult:
    """Build the ranked profile; equal scores keep R, I, A, S, E, C order."""
    ordered = [(code, int(scores.get(code, 0))) for code in HOLLAND_CODES]
    ordered.sort(key=lambda item: item[1], reverse=True)

    sorted_types = [TypeScore(type=code, name=HOLLAND_TYPES[code].name, score=score) for code, score in ordered]
    top_three = [
        TopType(type=t.type, name=t.name, score=t.score, percentage=percentage(t.score))
        for t in sorted_types[:3]
    ]
    primary = HOLLAND_TYPES[sorted_types[0].type]

    return HollandResult(
        primaryType=primary.code,
        primaryTypeName=primary.name,
        primaryScore=sorted_types[0].score,
        hollandCode="".join(t.type for t in top_three),
        scores={code: int(scores.get(code, 0)) for code in HOLLAND_CODES},
        sortedTypes=sorted_types,
        topThreeTypes=top_three,
        characteristics=list(primary.traits),
        workEnvironment=primary.environment,
        developmentSuggestion=primary.suggestion,
        majorRecommendations=[MajorRecommendation(name=n, match=m, reason=r) for n, m, r in primary.majors],
    )


def describe_type(code: str) -> str:
    info = HOLLAND_TYPES[code]
    return f"{info.name} - {info.description}"