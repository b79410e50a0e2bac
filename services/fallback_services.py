"""Template narratives used whenever the completion service is unavailable.

Everything here is built from data already in hand and never touches the
network, so a structurally valid request always gets readable text back.
"""
from __future__ import annotations

from typing import Optional

from schemas import ChartRecord, FallbackNarrative, HollandResult
from services.holland_services import HOLLAND_CODES, HOLLAND_TYPES
from services.ziwei_services import life_palace, major_star_names
from utils.time_utils import utc_now_iso

CHART_UNAVAILABLE_TEXT = "由于技术原因，紫微斗数排盘暂时不可用。建议您稍后重试或联系技术支持。"


def _narrative(text: str, timestamp: Optional[str] = None) -> FallbackNarrative:
    return FallbackNarrative(text=text.strip(), timestamp=timestamp or utc_now_iso())


def chart_unavailable_narrative(timestamp: Optional[str] = None) -> FallbackNarrative:
    return _narrative(CHART_UNAVAILABLE_TEXT, timestamp)


def ziwei_fallback_narrative(chart: ChartRecord, timestamp: Optional[str] = None) -> FallbackNarrative:
    if chart.isPlaceholder:
        return chart_unavailable_narrative(timestamp)

    info = chart.userInfo
    ming = life_palace(chart)
    stars = "、".join(major_star_names(ming)) or "无主星"
    position = ming.position or "未知位置"
    text = f"""## 紫微斗数分析报告

### 基本信息
{info.name}的命宫位于{position}，主星为{stars}，五行局为{info.fiveElementsClass}。

### 性格特质
基于您的紫微斗数排盘，您具有以下特质：
- 命主{info.soul}，身主{info.body}，体现了您的核心性格特征
- {info.fiveElementsClass}的特质影响着您的思维模式和行为方式

### 学习方向建议
根据您的星盘配置，建议考虑以下专业方向：

1. **理工科方向**：适合逻辑思维强、喜欢解决问题的特质
2. **人文社科**：适合感性思维、关注人文关怀的特点
3. **艺术创作**：发挥创意和想象力的优势
4. **商业管理**：培养领导能力和组织协调技能

### 发展建议
- 重视基础学科的学习，打好扎实的知识基础
- 培养多元化的兴趣爱好，开拓视野
- 注重实践能力的培养，理论与实践相结合
- 建议结合霍兰德职业兴趣测试，获得更全面的专业推荐

*注：本分析基于传统紫微斗数理论，仅供参考。*"""
    return _narrative(text, timestamp)


def holland_fallback_narrative(profile: HollandResult, timestamp: Optional[str] = None) -> FallbackNarrative:
    primary = HOLLAND_TYPES[profile.primaryType]
    score_lines = "\n".join(
        f"- {HOLLAND_TYPES[code].name}({code})：{profile.scores[code]}分" for code in HOLLAND_CODES
    )
    career_lines = "\n".join(
        f"{'🌟' if t.type == profile.primaryType else '⭐'} {HOLLAND_TYPES[t.type].careers}相关专业"
        for t in profile.topThreeTypes
    )
    text = f"""## 霍兰德职业兴趣测试分析报告

### 您的霍兰德代码：{profile.hollandCode}

### 主要兴趣类型：{primary.name}
您的主要职业兴趣倾向是{primary.name}，得分为{profile.primaryScore}分。
特征：{'、'.join(primary.traits)}

### 各维度得分分析
{score_lines}

### 推荐专业方向
基于您的兴趣特点，推荐以下专业：
{career_lines}

### 发展建议
1. **发挥优势**：重点发展{primary.name}相关的技能和知识
2. **平衡发展**：适当培养其他维度的能力，形成复合型优势
3. **实践探索**：通过实习、志愿服务等方式验证职业兴趣
4. **持续学习**：保持对新知识和技能的学习热情

*注：本分析基于霍兰德职业兴趣理论，仅供参考。职业选择还需综合考虑个人能力、价值观和市场需求等因素。*"""
    return _narrative(text, timestamp)


def combined_fallback_narrative(
    chart: ChartRecord,
    profile: HollandResult,
    timestamp: Optional[str] = None,
) -> FallbackNarrative:
    info = chart.userInfo
    if chart.isPlaceholder:
        chart_line = "紫微斗数排盘暂时不可用，以下建议主要依据霍兰德测试结果。"
    else:
        chart_line = f"紫微斗数显示您的命主为{info.soul}，身主为{info.body}，五行局为{info.fiveElementsClass}。"

    traits = "\n".join(f"- {trait}" for trait in profile.characteristics)
    majors = "\n".join(
        f"{i}. {m.name}（匹配度：{m.match}%）- {m.reason}"
        for i, m in enumerate(profile.majorRecommendations[:3], start=1)
    )
    text = f"""{info.name}的综合分析报告：

## 双重验证分析
{chart_line}
霍兰德测试显示您的主要类型为{profile.primaryTypeName}（{profile.hollandCode}），得分{profile.primaryScore}分。

## 性格特质综合
结合两种分析方法，您的主要特征包括：
{traits}

## 专业推荐整合
基于综合分析，为您推荐以下专业方向：
{majors}

## 发展建议
{profile.developmentSuggestion}

## 工作环境
适合的工作环境：{profile.workEnvironment}"""
    return _narrative(text, timestamp)
