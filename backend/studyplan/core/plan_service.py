from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import NamedTuple, Sequence

from studyplan.core.date_utils import DateLike, date_from_value, date_value, format_date_key
from studyplan.core.schemas_plan import StudyPlan

logger = logging.getLogger(__name__)


class PhaseRule(NamedTuple):
    start: int  # YYYYMMDD inclusive
    end: int  # YYYYMMDD inclusive
    plan: StudyPlan


# =============================================================================
# Tabla de fases (12 ene - 11 abr 2026). Orden = prioridad de evaluación.
# =============================================================================

PHASE_RULES: tuple[PhaseRule, ...] = (
    # Fase 1: arranque + física (20 días)
    PhaseRule(20260112, 20260131, StudyPlan(
        kind="phase",
        phase="第一阶段：抢跑期与物理基础",
        focus="调整状态 & 夯实基础：声学原理、伪像、多普勒技术",
        tasks=(
            "📖 教材精读：超声物理学基础章节（侧重：分辨力、衰减、调节）",
            "📺 视频课：多普勒效应原理与各类伪像产生机制详解",
            "📝 专项刷题：物理基础专项练习 30 题（提前进入备考状态）",
        ),
    )),
    # Fase 2: abdomen (20 días)
    PhaseRule(20260201, 20260220, StudyPlan(
        kind="phase",
        phase="第二阶段：腹部与消化系统",
        focus="系统突破：肝、胆、胰、脾、肾、消化道",
        tasks=(
            "📖 知识点：弥漫性肝病、肝脏占位、胆系结石与肿瘤鉴别",
            "📺 视频课：腹部疑难病例图像解析（关注微小病变与鉴别诊断）",
            "📝 章节刷题：腹部系统真题 50 题 + 错题深度解析",
        ),
    )),
    # Fase 3: cardiovascular (23 días, la más larga)
    PhaseRule(20260221, 20260315, StudyPlan(
        kind="phase",
        phase="第三阶段：心血管系统（攻坚战）",
        focus="攻克难点：心脏解剖、动力学、先心病、瓣膜病",
        tasks=(
            "🎨 绘图记忆：默画心脏大血管短轴、四腔心、五腔心切面",
            "📺 视频课：法洛四联症、房/室间隔缺损、心肌病超声表现",
            "📝 强化刷题：心血管专项 60 题（重点突破血流动力学计算题）",
        ),
    )),
    # Fase 4: gineco-obstetricia + órganos superficiales (16 días)
    PhaseRule(20260316, 20260331, StudyPlan(
        kind="phase",
        phase="第四阶段：妇产与浅表器官",
        focus="广度覆盖：产筛、子宫附件、甲状腺、乳腺",
        tasks=(
            "📖 背诵表格：胎儿生长发育孕周表、TI-RADS / BI-RADS 分级",
            "📺 视频课：胎儿心脏筛查切面、异位妊娠、浅表淋巴结",
            "📝 综合刷题：妇产+浅表混合练习 60 题（注意细节考点）",
        ),
    )),
    # Fase 5: sprint + simulacros (10 días)
    PhaseRule(20260401, 20260410, StudyPlan(
        kind="phase",
        phase="第五阶段：冲刺与全真模拟",
        focus="查漏补缺：全真模拟、错题清零、数值背诵",
        tasks=(
            "⏱️ 全真模考：严格按照考试时间进行 100 题测试 (人机对话模拟)",
            "📒 错题回顾：重做之前的错题本，确保盲点清零",
            "🧠 记忆突击：复习正常值范围、诊断标准等死记硬背内容",
        ),
    )),
    # Día del examen: rango terminal de un solo día
    PhaseRule(20260411, 20260411, StudyPlan(
        kind="exam_day",
        phase="决战日",
        focus="沉着冷静，金榜题名",
        tasks=("检查准考证和证件", "自信步入考场", "相信自己的判断"),
    )),
)

PRE_START_PLAN = StudyPlan(
    kind="pre_start",
    phase="预备阶段",
    focus="制定计划 & 资料整理",
    tasks=("整理教材与视频资源", "调整作息，准备开始备考", "熟悉考试大纲"),
)

POST_EXAM_PLAN = StudyPlan(
    kind="post_exam",
    phase="考试结束",
    focus="好好休息",
    tasks=("庆祝坚持下来的自己", "整理资料留存", "开启新的旅程"),
)


def classify(value: DateLike, rules: Sequence[PhaseRule] = PHASE_RULES) -> StudyPlan:
    """Plan de estudio para la fecha local de `value`. Función total: nunca falla."""
    current = date_value(value)

    if not rules or current < rules[0].start:
        return PRE_START_PLAN

    for rule in rules:
        if rule.start <= current <= rule.end:
            return rule.plan

    return POST_EXAM_PLAN


def check_rule_table(
    rules: Sequence[PhaseRule],
    start_date: date,
    exam_date: date,
) -> list[str]:
    """Lista de problemas de la tabla (vacía si es contigua y cubre start..exam).

    Contrato:
    - cada rango tiene start <= end
    - el primero empieza en start_date, el último es el día del examen (un solo día)
    - rangos consecutivos sin huecos ni solapamientos
    """
    problems: list[str] = []
    if not rules:
        return ["la tabla de fases está vacía"]

    for i, rule in enumerate(rules):
        if rule.start > rule.end:
            problems.append(f"rango {i} invertido: {rule.start} > {rule.end}")
        if not rule.plan.tasks:
            problems.append(f"rango {i} sin tareas")

    for i, (prev, nxt) in enumerate(zip(rules, rules[1:]), start=1):
        expected = date_from_value(prev.end) + timedelta(days=1)
        if nxt.start != date_value(expected):
            kind = "solapamiento" if nxt.start <= prev.end else "hueco"
            problems.append(f"{kind} entre rango {i - 1} y {i}: {prev.end} -> {nxt.start}")

    if rules[0].start != date_value(start_date):
        problems.append(
            f"la primera fase empieza {rules[0].start}, el plan empieza {format_date_key(start_date)}"
        )

    last = rules[-1]
    if not (last.start == last.end == date_value(exam_date)) or last.plan.kind != "exam_day":
        problems.append(
            f"el último rango debe ser solo el día del examen ({format_date_key(exam_date)})"
        )

    return problems


def log_rule_table_problems(start_date: date, exam_date: date) -> None:
    for problem in check_rule_table(PHASE_RULES, start_date, exam_date):
        logger.warning("Tabla de fases: %s", problem)
