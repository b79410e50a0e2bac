from __future__ import annotations

import json
from typing import Optional

from schemas import ChartRecord, HollandResult, HollandUserInfo
from services.holland_services import HOLLAND_CODES, describe_type


def get_system_prompt_ziwei() -> str:
    return "你是一位资深的紫微斗数专家，请基于排盘信息提供专业的分析。"


def get_system_prompt_combined() -> str:
    return (
        "你是一位资深的国学易经术数领域专家，请综合紫微斗数和霍兰德职业兴趣测试结果，"
        "为用户提供全面的专业选择建议。"
    )


def get_system_prompt_holland() -> str:
    return "你是一位专业的职业规划师，熟悉霍兰德职业兴趣理论，擅长为学生提供专业选择建议。"


def _palace_lines(chart: ChartRecord, max_minor: int = 5) -> str:
    blocks = []
    for name, palace in chart.palaces.items():
        major = "、".join(s.name for s in palace.majorStars) or "无主星"
        minor = "、".join(s.name for s in palace.minorStars[:max_minor]) or "无"
        blocks.append(f"{name}：{palace.position}\n    主星：{major}\n    辅星：{minor}")
    return "\n\n".join(blocks)


def get_user_prompt_ziwei(chart: ChartRecord, detailed: bool = False) -> str:
    info = chart.userInfo
    header = f"""请基于以下紫微斗数排盘信息，为{info.name}（{info.gender}）提供专业的性格分析和专业选择建议：

【基本信息】
出生日期：{info.solarDate}（{info.lunarDate}）
生辰八字：{info.chineseDate}
生肖：{info.zodiac}
命主：{info.soul}
身主：{info.body}
五行局：{info.fiveElementsClass}

【宫位星曜分布】
{_palace_lines(chart)}
"""
    if not detailed:
        return header + """
请从以下维度进行分析：
1. **性格特质分析**：基于命宫配置
2. **天赋才能分析**：结合各宫位特点
3. **适合的专业领域**：基于星曜特质
4. **具体专业推荐**：提供3-5个最适合的大学专业
5. **学习发展建议**：针对性的能力培养建议

请提供专业、详细的分析报告。"""

    return header + """
请从以下几个方面进行分析：

## 1. 性格特质分析
- 基于命宫主星分析核心性格
- 基于身宫特质分析行为模式
- 基于三方四正分析性格的完整面貌

## 2. 天赋能力分析
- 基于官禄宫分析适合的职业类型
- 基于财帛宫分析财富获取方式
- 基于福德宫分析内在驱动力

## 3. 学习方向建议
- 推荐3-5个最适合的专业领域
- 说明每个专业选择的紫微依据
- 分析在这些领域的发展潜力

## 4. 发展建议
- 提供具体的学习和发展路径
- 指出需要注意的挑战和机遇
- 给出实用的建议

请用专业而易懂的语言，避免过于深奥的术语，重点关注实用性和指导性。"""


def get_user_prompt_holland(profile: HollandResult, user_info: Optional[HollandUserInfo] = None) -> str:
    score_lines = "\n".join(
        f"{code} ({describe_type(code)}): {profile.scores[code]}分" for code in HOLLAND_CODES
    )
    rank_lines = "\n".join(
        f"{i}. {t.type} ({describe_type(t.type)}) - {t.score}分"
        for i, t in enumerate(profile.topThreeTypes, start=1)
    )

    personal = ""
    ziwei_hint = ""
    if user_info is not None:
        personal = f"""
【个人信息】
姓名：{user_info.name or '用户'}
性别：{user_info.gender or '未知'}
"""
        if user_info.ziweiInfo:
            personal += f"紫微斗数信息：{json.dumps(user_info.ziweiInfo, ensure_ascii=False)}\n"
            ziwei_hint = "\n请结合紫微斗数分析结果，提供更个性化的建议。"

    return f"""作为专业的职业规划师，请基于以下霍兰德职业兴趣测试结果，为用户提供详细的职业兴趣分析和专业推荐：

【测试结果】
霍兰德代码：{profile.hollandCode}
各维度得分：
{score_lines}

主要类型排序：
{rank_lines}
{personal}
请从以下方面进行分析：

## 1. 职业兴趣特质分析
- 分析主导的职业兴趣类型特征
- 解释各维度分数的含义
- 分析兴趣组合的独特性

## 2. 适合的专业领域
- 基于霍兰德代码推荐5-8个具体专业
- 每个专业要说明匹配的理由
- 按照匹配度排序

## 3. 职业发展路径
- 推荐相关的职业方向
- 分析在这些领域的发展优势
- 提供职业发展建议

## 4. 学习建议
- 提供具体的学习发展建议
- 指出需要培养的核心能力
- 给出实用的行动指导
{ziwei_hint}
请用通俗易懂的语言，重点关注实用性和可操作性。"""


def get_user_prompt_combined(chart: ChartRecord, chart_narrative: str, profile: HollandResult) -> str:
    info = chart.userInfo
    top_three = "、".join(f"{t.name}（{t.type}，{t.score}分，{t.percentage}%）" for t in profile.topThreeTypes)
    return f"""请综合以下紫微斗数和霍兰德职业兴趣测试结果，为{info.name}（{info.gender}）提供全面的专业选择建议：

【紫微斗数】
命主：{info.soul}，身主：{info.body}，五行局：{info.fiveElementsClass}
紫微分析摘要：
{chart_narrative}

【霍兰德测试结果】
- 主要类型：{profile.primaryTypeName}（{profile.primaryType}型）
- 霍兰德代码：{profile.hollandCode}
- 主要得分：{profile.primaryScore}分
- 前三类型：{top_three}
- 类型特征：{'、'.join(profile.characteristics)}

请提供：
1. **双重验证分析**：紫微斗数与霍兰德测试结果的一致性分析
2. **性格特质综合**：结合两种分析方法的性格特点总结
3. **专业推荐整合**：基于两种分析的专业推荐，并说明匹配度
4. **发展路径建议**：结合传统智慧与现代心理学的发展建议

请提供专业、全面的综合分析报告。"""
