from __future__ import annotations

MAX_CV_PARSE_CHARS = 6000
MAX_JOB_PARSE_CHARS = 4000

PARSE_TEMPERATURE = 0.1
KEYWORD_TEMPERATURE = 0.0

CV_PARSE_SYSTEM_PROMPT = "You are a precise CV parsing assistant. Always return valid JSON."

JOB_PARSE_SYSTEM_PROMPT = "You are a precise job requirement extractor. Always return valid JSON."

CV_PARSE_INSTRUCTIONS = """Extract and categorize information from the CV below.

Return ONLY a JSON object with these string fields:
{
  "hardSkills": "All technical skills, tools, technologies, programming languages, frameworks, certifications",
  "softSkills": "All soft skills such as leadership, communication, teamwork (look for action verbs: led, managed, coordinated, mentored)",
  "education": "Degrees, universities, graduation dates, relevant coursework",
  "experience": "Job titles, companies, dates, key responsibilities and achievements",
  "summary": "Professional summary or career objective if present"
}

Rules:
- Keep original phrasing when possible.
- If a section is missing, use an empty string "".
"""

JOB_PARSE_INSTRUCTIONS = """Extract the requirements from the job posting below.

Return ONLY a JSON object with these string fields:
{
  "hardSkills": "All technical requirements: tools, technologies, languages, frameworks",
  "softSkills": "All soft skills required: leadership, communication, teamwork, problem-solving",
  "experience": "Required years of experience, type of experience and key responsibilities",
  "education": "Educational requirements: degree level, field of study, certifications",
  "summary": "One sentence describing the role"
}

Rules:
- Include specific years of experience if stated.
- If a section is missing, use an empty string "".
"""

CV_KEYWORD_SYSTEM_PROMPT = (
    "You are a precise keyword extractor. Extract ONLY keywords that are explicitly mentioned in the CV. "
    "Do not invent or assume anything. Return valid JSON with all four sections."
)

JOB_KEYWORD_SYSTEM_PROMPT = (
    "You are a comprehensive requirement extractor. Extract all job requirements grouped by subcategory. "
    "Return valid JSON with all four sections."
)

KEYWORD_SCHEMA_EXAMPLE = """{
  "hardSkills": {"languages": [], "frameworks": [], "databases": [], "cloud": [], "tools": []},
  "softSkills": {"leadership": [], "communication": [], "collaboration": [], "problemSolving": [], "traits": []},
  "experience": {"roles": [], "achievements": [], "projects": [], "domains": [], "metrics": [], "years": []},
  "education": {"degrees": [], "certifications": [], "specializations": [], "institutions": [], "skills": []}
}"""

CV_KEYWORD_INSTRUCTIONS = f"""Extract 10-15 short keywords per category that are ACTUALLY MENTIONED in this CV.

Rules:
- Only extract what is explicitly written; do not add technologies implied by job titles.
- Keywords are short noun phrases (1-4 words).
- Always return all four categories, using empty arrays when nothing applies.

Return grouped JSON shaped like:
{KEYWORD_SCHEMA_EXAMPLE}
"""

JOB_KEYWORD_INSTRUCTIONS = f"""Extract 10-15 short requirements per category from this job description.

Rules:
- Include required, preferred and nice-to-have items.
- Keywords are short noun phrases (1-4 words).
- Always return all four categories, using empty arrays when nothing applies.

Return grouped JSON shaped like:
{KEYWORD_SCHEMA_EXAMPLE}
"""

SECTION_LIMITS = {
    "hardSkills": 1200,
    "softSkills": 800,
    "experience": 1200,
    "education": 600,
}
