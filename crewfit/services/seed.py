"""Demo catalog used in dev and by the test suite.

Three published 10-question tests, two assessments built from them, one
link per assessment (the check-in link expires on 2024-07-01), one
respondent half way through onboarding and one who has not started.
"""

from __future__ import annotations

from datetime import UTC, datetime

from crewfit.models.assessment import Assessment, AssessmentTestRef
from crewfit.models.assignment import AssessmentAssignment, AssignmentProgress
from crewfit.models.link import AssessmentLink
from crewfit.models.session import AssessmentSession
from crewfit.models.test import (
    PsychologicalTest,
    QuestionOption,
    ScoreBand,
    VersionMeta,
    WeightedQuestion,
)
from crewfit.repos.store import AssessmentStore

_OPTION_LABELS = (
    "Quase nunca descreve minha atuacao",
    "As vezes descreve minha atuacao",
    "Frequentemente descreve minha atuacao",
    "Quase sempre descreve minha atuacao",
)


def _at(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=UTC)


def _question(qid: str, prompt: str, dimension: str) -> WeightedQuestion:
    return WeightedQuestion(
        id=qid,
        prompt=prompt,
        dimension=dimension,
        options=tuple(
            QuestionOption(id=f"{qid}-opt{i + 1}", label=label, weight=i + 1)
            for i, label in enumerate(_OPTION_LABELS)
        ),
    )


def _bands(low: str, medium: str, high: str) -> tuple[ScoreBand, ...]:
    return (
        ScoreBand(
            id="low",
            label=low,
            min=10,
            max=19,
            description="Resultados indicam aderencia baixa a competencia analisada.",
            color="#F97316",
        ),
        ScoreBand(
            id="medium",
            label=medium,
            min=20,
            max=29,
            description="Resultados sugerem desenvolvimento em andamento.",
            color="#FACC15",
        ),
        ScoreBand(
            id="high",
            label=high,
            min=30,
            max=40,
            description="Resultados demonstram forte alinhamento ao comportamento esperado.",
            color="#22C55E",
        ),
    )


_DISC = [
    ("disc-1", "Assumo a lideranca quando o grupo precisa de direcao.", "Dominancia"),
    ("disc-2", "Gosto de negociar resultados com clareza.", "Dominancia"),
    ("disc-3", "Procuro envolver todas as pessoas nas decisoes.", "Influencia"),
    ("disc-4", "Adapto meu tom de voz conforme o contexto.", "Influencia"),
    ("disc-5", "Mantenho um ritmo constante mesmo sob pressao.", "Estabilidade"),
    ("disc-6", "Prefiro ambientes com rotina previsivel.", "Estabilidade"),
    ("disc-7", "Confiro os detalhes antes de entregar uma tarefa.", "Conformidade"),
    ("disc-8", "Sigo padroes de qualidade mesmo com prazos curtos.", "Conformidade"),
    ("disc-9", "Apoio colegas que precisam de orientacao.", "Suporte"),
    ("disc-10", "Ofereco feedbacks construtivos ao time.", "Suporte"),
]

_COLLABORATION = [
    ("col-1", "Compreendo rapidamente o papel de cada pessoa no time.", "Clareza"),
    ("col-2", "Consigo priorizar tarefas coletivas sem perder qualidade.", "Organizacao"),
    ("col-3", "Ajusto minha comunicacao conforme o perfil da equipe.", "Comunicacao"),
    ("col-4", "Aceito feedbacks e aplico melhorias logo na sequencia.", "Comunicacao"),
    ("col-5", "Percebo sinais de sobrecarga nos colegas.", "Empatia"),
    ("col-6", "Apoio quem precisa pausar sem comprometer as entregas.", "Empatia"),
    ("col-7", "Tenho planos alternativos quando algo nao sai como previsto.", "Flexibilidade"),
    ("col-8", "Aprendo rapidamente novas ferramentas.", "Flexibilidade"),
    ("col-9", "Compartilho informacoes importantes sem ser solicitado.", "Transparencia"),
    ("col-10", "Faco acordos claros sobre responsabilidades.", "Transparencia"),
]

_RESILIENCE = [
    ("res-1", "Consigo manter a calma diante de mudancas inesperadas.", "Controle"),
    ("res-2", "Transformo pressao em foco.", "Controle"),
    ("res-3", "Peco apoio quando percebo que estou sobrecarregada.", "Rede de apoio"),
    ("res-4", "Consigo desconectar do trabalho ao final do dia.", "Recuperacao"),
    ("res-5", "Aprendo algo novo com cada situacao desafiadora.", "Aprendizado"),
    ("res-6", "Identifico sinais fisicos e emocionais de estresse.", "Autoconsciencia"),
    ("res-7", "Tenho estrategias pessoais para recarregar as energias.", "Recuperacao"),
    ("res-8", "Consigo dizer nao quando necessario.", "Limites"),
    ("res-9", "Reviso processos para evitar erros futuros.", "Melhoria continua"),
    (
        "res-10",
        "Reforco acordos de forma respeitosa quando algo foge do combinado.",
        "Colaboracao",
    ),
]


def demo_tests() -> list[PsychologicalTest]:
    return [
        PsychologicalTest(
            id="test-disc-pt",
            slug="perfil-disc",
            language="pt",
            title="Mapa DISC de Colaboracao",
            description=(
                "Avaliacao comportamental para identificar estilos de trabalho "
                "e necessidades de apoio."
            ),
            questions=tuple(_question(*q) for q in _DISC),
            interpretation_bands=_bands("Baixo alinhamento", "Equilibrado", "Alta adequacao"),
            created_at=_at("2024-01-15T09:00:00"),
            updated_at=_at("2024-05-05T14:30:00"),
            version=3,
            status="published",
            estimated_duration_minutes=15,
            tags=("perfil", "comportamento"),
            history=(
                VersionMeta(1, _at("2024-01-15T09:00:00"), "Versao inicial"),
                VersionMeta(2, _at("2024-03-22T10:00:00"), "Ajustes nas descricoes"),
                VersionMeta(
                    3,
                    _at("2024-05-05T14:30:00"),
                    "Atualizacao de interpretacoes",
                    author="Equipe Psicologia",
                ),
            ),
        ),
        PsychologicalTest(
            id="test-collaboration-pt",
            slug="dinamica-equipe",
            language="pt",
            title="Colaboracao e Dinamica de Equipe",
            description=(
                "Explora habilidades socioemocionais essenciais para atuacao "
                "em equipes multidisciplinares."
            ),
            questions=tuple(_question(*q) for q in _COLLABORATION),
            interpretation_bands=_bands(
                "Precisa de suporte", "Em desenvolvimento", "Pronto para liderar"
            ),
            created_at=_at("2024-02-10T11:00:00"),
            updated_at=_at("2024-04-12T16:45:00"),
            version=2,
            status="published",
            estimated_duration_minutes=18,
            tags=("dinamica", "equipes"),
            history=(
                VersionMeta(1, _at("2024-02-10T11:00:00"), "Versao inicial"),
                VersionMeta(
                    2,
                    _at("2024-04-12T16:45:00"),
                    "Inclusao de nova dimensao de transparencia",
                ),
            ),
        ),
        PsychologicalTest(
            id="test-resilience-pt",
            slug="resiliencia-operacional",
            language="pt",
            title="Resiliencia e Gestao do Estresse",
            description=(
                "Mede estrategias de autocuidado e capacidade de manter "
                "performance em cenarios intensos."
            ),
            questions=tuple(_question(*q) for q in _RESILIENCE),
            interpretation_bands=_bands("Fragil", "Atento", "Sustentado"),
            created_at=_at("2024-03-05T08:30:00"),
            updated_at=_at("2024-05-25T15:10:00"),
            version=1,
            status="published",
            estimated_duration_minutes=12,
            tags=("bem-estar", "resiliencia"),
            history=(VersionMeta(1, _at("2024-03-05T08:30:00"), "Versao inicial"),),
        ),
    ]


def demo_assessments() -> list[Assessment]:
    return [
        Assessment(
            id="assessment-onboarding",
            name="Avaliacao de Integracao",
            slug="avaliacao-integracao",
            description=(
                "Primeiro diagnostico completo com foco em acolhimento e "
                "alinhamento de expectativas."
            ),
            tests=(
                AssessmentTestRef("test-disc-pt", 3, 1),
                AssessmentTestRef("test-collaboration-pt", 2, 2),
                AssessmentTestRef("test-resilience-pt", 1, 3),
            ),
            default_language="pt",
            created_at=_at("2024-05-18T13:00:00"),
            updated_at=_at("2024-06-01T09:40:00"),
            version=2,
            status="published",
            history=(
                VersionMeta(1, _at("2024-05-18T13:00:00"), "Avaliacao inicial"),
                VersionMeta(2, _at("2024-06-01T09:40:00"), "Inclusao do teste de resiliencia"),
            ),
            estimated_duration_minutes=45,
            tags=("onboarding", "primeira-avaliacao"),
        ),
        Assessment(
            id="assessment-checkin",
            name="Check-in Trimestral",
            slug="checkin-trimestral",
            description=(
                "Combina feedback rapido com monitoramento de bem-estar e colaboracao."
            ),
            tests=(
                AssessmentTestRef("test-collaboration-pt", 2, 1),
                AssessmentTestRef("test-resilience-pt", 1, 2),
            ),
            default_language="pt",
            created_at=_at("2024-05-05T12:30:00"),
            updated_at=_at("2024-05-28T10:00:00"),
            version=1,
            status="draft",
            history=(VersionMeta(1, _at("2024-05-05T12:30:00"), "Configuracao inicial"),),
            estimated_duration_minutes=25,
            tags=("checkin", "continuo"),
        ),
    ]


def demo_links(base_url: str = "http://localhost:5173") -> list[AssessmentLink]:
    base = base_url.rstrip("/")
    return [
        AssessmentLink(
            id="link-avaliacao-inicial",
            assessment_id="assessment-onboarding",
            code="onboarding-pt",
            language="pt",
            url=f"{base}/avaliacoes/onboarding-pt",
            created_at=_at("2024-05-20T09:00:00"),
        ),
        AssessmentLink(
            id="link-reavaliacao-es",
            assessment_id="assessment-checkin",
            code="checkin-es",
            language="es",
            url=f"{base}/avaliacoes/checkin-es",
            created_at=_at("2024-06-02T10:15:00"),
            expires_at=_at("2024-07-01T23:59:00"),
        ),
    ]


def demo_assignments() -> list[AssessmentAssignment]:
    return [
        AssessmentAssignment(
            id="assignment-ana-onboarding",
            assessment_id="assessment-onboarding",
            assignee_id="1",
            assignee_name="Ana Souza",
            link_id="link-avaliacao-inicial",
            language="pt",
            status="in_progress",
            started_at=_at("2024-06-03T08:05:00"),
            last_activity_at=_at("2024-06-03T08:25:00"),
            progress=AssignmentProgress(
                current_test_id="test-collaboration-pt",
                current_question_id="col-5",
                completed_tests=("test-disc-pt",),
                percentage=48,
                remaining_time_ms=18 * 60 * 1000,
            ),
        ),
        AssessmentAssignment(
            id="assignment-maria-checkin",
            assessment_id="assessment-checkin",
            assignee_id="2",
            assignee_name="Maria Lopez",
            link_id="link-reavaliacao-es",
            language="es",
            status="pending",
            progress=AssignmentProgress(remaining_time_ms=25 * 60 * 1000),
        ),
    ]


def demo_sessions() -> list[AssessmentSession]:
    disc_weights = [3, 4, 3, 4, 2, 3, 4, 3, 4, 3]
    return [
        AssessmentSession(
            assignment_id="assignment-ana-onboarding",
            status="active",
            started_at=_at("2024-06-03T08:05:00"),
            last_saved_at=_at("2024-06-03T08:25:00"),
            answers={
                "test-disc-pt": {
                    qid: weight for (qid, _, _), weight in zip(_DISC, disc_weights)
                },
            },
            timer_ms=45 * 60 * 1000,
            current_test_index=1,
            current_question_index=4,
        ),
    ]


def seed_demo_data(store: AssessmentStore, *, base_url: str = "http://localhost:5173") -> None:
    for test in demo_tests():
        store.catalog.add_test(test)
    for assessment in demo_assessments():
        store.catalog.add_assessment(assessment)
    for link in demo_links(base_url):
        store.links.add(link)
    for assignment in demo_assignments():
        store.assignments.add(assignment)
    for session in demo_sessions():
        store.sessions.save(session)
