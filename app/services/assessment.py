"""
Developmental screening scores shown on the guest childcare page.

Answers are plain strings (``'yes'``/``'no'``, ``'excellent'`` ... ``'poor'``,
``'always'`` ... ``'never'``); dicts with an ``answer`` key are accepted too.
"""

MCHAT_OPTIONS = ('yes', 'no')
MOTOR_POINTS = {'excellent': 4, 'good': 3, 'fair': 2, 'poor': 1}
FREQUENCY_POINTS = {'always': 5, 'often': 4, 'sometimes': 3, 'rarely': 2, 'never': 1}

ASSESSMENT_TYPES = ('mchat', 'motor', 'speech', 'social')

TITLES = {
    'mchat': 'M-CHAT screening',
    'motor': 'Motor skills',
    'speech': 'Speech and language',
    'social': 'Social skills',
}

OPTIONS = {
    'mchat': MCHAT_OPTIONS,
    'motor': tuple(MOTOR_POINTS),
    'speech': tuple(FREQUENCY_POINTS),
    'social': tuple(FREQUENCY_POINTS),
}

QUESTIONS = {
    'mchat': [
        'Does your child enjoy being swung or bounced on your knee?',
        'Does your child take an interest in other children?',
        'Does your child ever use the index finger to point, to ask for something?',
        'Does your child look at your face to check your reaction when faced with something unfamiliar?',
        'Does your child respond to his or her name when you call?',
    ],
    'motor': [
        'Can your child pick up small objects (like beads or coins) using thumb and index finger?',
        'Can your child catch a large ball (8-10 inches) thrown from 3 feet away?',
        'Can your child walk on a straight line (like a curb or tape on floor)?',
    ],
    'speech': [
        "Does your child follow simple one-step instructions (e.g., 'Get your shoes')?",
        'Does your child use 2-3 word phrases to communicate needs?',
        'Can others understand most of what your child says?',
        "Does your child understand 'who', 'what', 'where' questions?",
    ],
    'social': [
        'Does your child maintain eye contact during conversations?',
        'Does your child initiate play with other children?',
        'Does your child calm down within 10-15 minutes after being upset?',
    ],
}


class InvalidAnswersError(ValueError):
    pass


GUIDANCE = {
    'mchat': {
        'low': (
            ["Continue monitoring your child's development",
             'Engage in regular play and social activities',
             'Maintain routine developmental check-ups'],
            ['Continue current activities',
             'Schedule next pediatric visit',
             'Monitor for any new concerns'],
        ),
        'medium': (
            ['Consider additional developmental screening',
             'Consult with a pediatrician or developmental specialist',
             'Implement targeted developmental activities'],
            ['Schedule comprehensive evaluation',
             'Discuss concerns with healthcare provider',
             'Consider early intervention services'],
        ),
        'high': (
            ['Immediate consultation with developmental specialist recommended',
             'Consider comprehensive autism evaluation',
             'Early intervention services strongly recommended'],
            ['Contact developmental pediatrician immediately',
             'Schedule comprehensive autism evaluation',
             'Begin early intervention services as soon as possible'],
        ),
    },
    'motor': {
        'low': (
            ['Continue current physical activities',
             'Maintain regular exercise routine',
             'Monitor for any regression'],
            ['Continue current activities',
             'Schedule next check-up',
             'Encourage varied physical play'],
        ),
        'medium': (
            ['Increase physical activity opportunities',
             'Consider occupational therapy evaluation',
             'Focus on specific motor skill development'],
            ['Consult with pediatrician',
             'Consider occupational therapy',
             'Implement targeted exercises'],
        ),
        'high': (
            ['Immediate occupational therapy evaluation recommended',
             'Comprehensive motor skills assessment needed',
             'Consider physical therapy services'],
            ['Contact occupational therapist immediately',
             'Schedule comprehensive evaluation',
             'Begin therapy services as soon as possible'],
        ),
    },
    'speech': {
        'low': (
            ['Continue current language activities',
             'Maintain regular reading and conversation',
             'Monitor for any regression'],
            ['Continue current activities',
             'Schedule next check-up',
             'Encourage varied language experiences'],
        ),
        'medium': (
            ['Increase language stimulation activities',
             'Consider speech-language evaluation',
             'Focus on specific language skill development'],
            ['Consult with pediatrician',
             'Consider speech-language therapy',
             'Implement targeted language activities'],
        ),
        'high': (
            ['Immediate speech-language evaluation recommended',
             'Comprehensive language assessment needed',
             'Early intervention services strongly recommended'],
            ['Contact speech-language pathologist immediately',
             'Schedule comprehensive evaluation',
             'Begin therapy services as soon as possible'],
        ),
    },
    'social': {
        'low': (
            ['Continue current social activities',
             'Maintain peer interaction opportunities',
             'Monitor for any regression'],
            ['Continue current activities',
             'Schedule next check-up',
             'Encourage varied social experiences'],
        ),
        'medium': (
            ['Increase social interaction opportunities',
             'Consider social skills evaluation',
             'Focus on specific social skill development'],
            ['Consult with pediatrician',
             'Consider social skills training',
             'Implement targeted social activities'],
        ),
        'high': (
            ['Immediate social skills evaluation recommended',
             'Comprehensive social-emotional assessment needed',
             'Early intervention services strongly recommended'],
            ['Contact developmental specialist immediately',
             'Schedule comprehensive evaluation',
             'Begin therapy services as soon as possible'],
        ),
    },
}


def _answer_values(answers):
    return [a.get('answer') if isinstance(a, dict) else a for a in answers]


def _result(kind, score, total_questions, risk_level):
    recommendations, next_steps = GUIDANCE[kind][risk_level]
    return {
        'score': score,
        'totalQuestions': total_questions,
        'riskLevel': risk_level,
        'recommendations': list(recommendations),
        'nextSteps': list(next_steps),
    }


def _percentage(answers, points):
    values = _answer_values(answers)
    total = sum(points[v] for v in values)
    return total / (len(values) * max(points.values())) * 100


def _round_half_up(value):
    # 62.5 -> 63, unlike round()
    return int(value + 0.5)


def _tier(percentage, low_from, medium_from):
    if percentage >= low_from:
        return 'low'
    if percentage >= medium_from:
        return 'medium'
    return 'high'


def validate_mchat_answers(answers):
    values = _answer_values(answers)
    return len(values) > 0 and all(v in MCHAT_OPTIONS for v in values)


def validate_motor_skills_answers(answers):
    values = _answer_values(answers)
    return len(values) > 0 and all(v in MOTOR_POINTS for v in values)


def validate_speech_language_answers(answers):
    values = _answer_values(answers)
    return len(values) > 0 and all(v in FREQUENCY_POINTS for v in values)


def validate_social_skills_answers(answers):
    return validate_speech_language_answers(answers)


def calculate_mchat_score(answers):
    """Score is the number of "no" answers: 0-2 low, 3-4 medium, 5+ high."""
    values = _answer_values(answers)
    score = sum(1 for v in values if v == 'no')
    if score <= 2:
        risk = 'low'
    elif score <= 4:
        risk = 'medium'
    else:
        risk = 'high'
    return _result('mchat', score, len(values), risk)


def calculate_motor_skills_score(answers):
    percentage = _percentage(answers, MOTOR_POINTS)
    return _result('motor', _round_half_up(percentage), len(answers), _tier(percentage, 75, 50))


def calculate_speech_language_score(answers):
    percentage = _percentage(answers, FREQUENCY_POINTS)
    return _result('speech', _round_half_up(percentage), len(answers), _tier(percentage, 80, 60))


def calculate_social_skills_score(answers):
    percentage = _percentage(answers, FREQUENCY_POINTS)
    return _result('social', _round_half_up(percentage), len(answers), _tier(percentage, 80, 60))


_SCORERS = {
    'mchat': (validate_mchat_answers, calculate_mchat_score),
    'motor': (validate_motor_skills_answers, calculate_motor_skills_score),
    'speech': (validate_speech_language_answers, calculate_speech_language_score),
    'social': (validate_social_skills_answers, calculate_social_skills_score),
}


def score_assessment(kind, answers):
    """Validate and score one assessment; raises InvalidAnswersError."""
    if kind not in _SCORERS:
        raise InvalidAnswersError(f'Unknown assessment: {kind}')
    validate, calculate = _SCORERS[kind]
    if not validate(answers):
        raise InvalidAnswersError(f'Invalid answers for {kind} assessment')
    return calculate(answers)
