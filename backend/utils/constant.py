MENTOR_SYSTEM_PROMPT = """You are გიორგი (Giorgi), an AI business mentor for Cofounder.ge.
You help Georgian entrepreneurs develop their business ideas through friendly conversation.

LANGUAGE: Always respond in Georgian (ქართული).

YOUR 4 TOOLS:
1. start_topic - Start a new topic (creates field + asks first question) - MUST USE FIRST!
2. ask_followup - Ask follow-up question for CURRENT topic (only after start_topic)
3. complete_topic - Save content to field and optionally start next topic
4. end_session - Finish conversation and show results

⚠️ CRITICAL RULE: You MUST call start_topic BEFORE you can use ask_followup!
The ask_followup tool only works if a topic has been started first.
Only ONE topic can be active at a time. Complete it before starting another.

CONVERSATION FLOW:

Step 1: When user submits their idea (VERY FIRST MESSAGE)
→ MUST call start_topic with field_key="problem" to explore the problem
→ Example question: "🤖 Cofounder\\n\\nმადლობა იდეისთვის! 🎉\\n\\nრა პრობლემას წყვეტს შენი იდეა? ვინ განიცდის ამ პრობლემას?"

Step 2: After user answers
→ If answer is vague: call ask_followup
→ If answer has detail: call complete_topic with summarized content AND next_topic

Step 3: When completing a topic
→ ALWAYS include next_topic in complete_topic (except for last topic before end_session)
→ Choose the next topic naturally based on conversation flow

Step 4: When you have completed MINIMUM {min_fields} fields
→ Call end_session with score (1-10) and assessment

QUESTION GUIDELINES:
- Follow the RECOMMENDED DEPTH given for the active topic
- If user gives a detailed answer → complete the topic early
- Each topic = 1 passport field. Don't mix topics!
- Always start questions with "🤖 Cofounder\\n"

GRAMMAR CORRECTION:
- When saving content in complete_topic, ALWAYS correct grammar and spelling
- Keep the meaning and information intact
- Write in proper, professional Georgian (ქართული)

AVAILABLE FIELDS:
{field_catalog}

FIELD SELECTION RULES:
→ Do NOT ask all fields - choose only the most relevant ones for THIS idea
→ For tech ideas: consider technology, team, mvp_features
→ For service ideas: consider distribution, pricing, partnerships
→ For marketplace ideas: consider market_size, growth, competition
→ Always include: problem (first!), solution, and target_users

RESPONSE FORMAT:
- You MUST respond with a function/tool call
- NEVER just send text without a tool call
- If unsure what to do → call ask_followup with a clarifying question"""

INITIAL_GREETING = """🤖 Cofounder

გამარჯობა! მე ვარ გიორგი, შენი ბიზნეს მენტორი.

აღწერე შენი ბიზნეს იდეა და დავიწყოთ მისი განვითარება! 💡"""

APOLOGY_MESSAGE = "დაფიქსირდა შეცდომა. გთხოვთ სცადოთ თავიდან."

CONTINUE_FALLBACK_MESSAGE = "🤖 Cofounder\n\nგთხოვთ გააგრძელოთ - მეტი დეტალი მიამბეთ თქვენი იდეის შესახებ."

CLARIFICATION_FALLBACK = "🤔 შეამჩნიე რაღაც წინააღმდეგობა თქვენს პასუხებში. შეგიძლიათ დააზუსტოთ?"

NEXT_TOPIC_NUDGE = (
    "The previous topic is complete but no next topic was started. "
    "Call start_topic now with the most relevant field that is not completed yet."
)

FINISH_OR_NEXT_TOPIC_NUDGE = (
    "The previous topic is complete and the minimum number of fields is reached. "
    "Call end_session if the passport is ready, otherwise call start_topic with the next most relevant field."
)

# field_key -> (display name, icon)
FIELD_CATALOG = {
    "idea": ("იდეა", "💡"),
    "problem": ("პრობლემა", "❓"),
    "solution": ("გადაწყვეტა", "💡"),
    "target_users": ("სამიზნე აუდიტორია", "🎯"),
    "value_proposition": ("უნიკალური ღირებულება", "✨"),
    "competition": ("კონკურენცია", "⚔️"),
    "revenue_model": ("შემოსავლის მოდელი", "💰"),
    "mvp_features": ("MVP ფუნქციები", "🚀"),
    "risks": ("რისკები", "⚠️"),
    "metrics": ("მეტრიკები", "📊"),
    "experience": ("გამოცდილება", "🧭"),
    "market_size": ("ბაზრის ზომა", "📈"),
    "pricing": ("ფასი", "💵"),
    "distribution": ("გავრცელება", "🚚"),
    "team": ("გუნდი", "👥"),
    "funding": ("დაფინანსება", "🏦"),
    "timeline": ("ვადები", "📅"),
    "technology": ("ტექნოლოგია", "💻"),
    "legal": ("სამართლებრივი", "⚖️"),
    "partnerships": ("პარტნიორობა", "🤝"),
    "growth": ("ზრდა", "🌱"),
}

FIELD_DESCRIPTIONS = {
    "problem": "What problem does this solve?",
    "solution": "How does it solve the problem?",
    "target_users": "Who are the customers?",
    "value_proposition": "Why choose this?",
    "competition": "Who else solves this?",
    "revenue_model": "How will it make money?",
    "mvp_features": "Minimum viable product",
    "risks": "What could go wrong?",
    "metrics": "How to measure success?",
    "experience": "User's background",
    "market_size": "How big is the market?",
    "pricing": "How much will customers pay?",
    "distribution": "How to reach customers?",
    "team": "Who will build this?",
    "funding": "How much money needed?",
    "timeline": "When will it launch?",
    "technology": "What tech is needed?",
    "legal": "Licenses, regulations?",
    "partnerships": "Key partners needed?",
    "growth": "How will it scale?",
}

IDEA_FIELD_KEY = "idea"

# Keys the model may open as conversation topics. The idea field is written by the user directly.
TOPIC_FIELD_KEYS = [key for key in FIELD_CATALOG if key != IDEA_FIELD_KEY]

FIELD_COMPLEXITY_MAP = {
    # low
    "experience": "low",
    "team": "low",
    "mvp_features": "low",
    # medium
    "problem": "medium",
    "solution": "medium",
    "target_users": "medium",
    "marketing_strategy": "medium",
    "risks": "medium",
    "launch_plan": "medium",
    # high
    "value_proposition": "high",
    "uvp": "high",
    "revenue_model": "high",
    "business_model": "high",
    "competitive_advantage": "high",
    "competition": "high",
    "financial_forecast": "high",
    "metrics": "high",
}

BASE_QUESTION_COUNTS = {"low": 2, "medium": 4, "high": 5}

EXPERIENCE_ADJUSTMENTS = {"expert": -2, "intermediate": 0, "beginner": 2}

QUALITY_ADJUSTMENTS = {"detailed": -1, "adequate": 0, "vague": 1, "first_field": 0}

MIN_DEPTH = 2
MAX_DEPTH = 7

# Georgian labels used in the opening message and in memory summaries
ROLE_LABELS = {
    "student": "სტუდენტი",
    "employed": "დასაქმებული",
    "founder": "დამფუძნებელი",
    "other": "სხვა",
}

BUSINESS_EXPERIENCE_LABELS = {
    "none": "არ მაქვს",
    "1-2_years": "1-2 წელი",
    "3-5_years": "3-5 წელი",
    "5+_years": "5+ წელი",
}

STARTUP_KNOWLEDGE_LABELS = {
    "beginner": "დამწყები",
    "intermediate": "საშუალო",
    "expert": "ექსპერტი",
}

IDEA_STAGE_LABELS = {
    "just_idea": "მხოლოდ იდეა",
    "validating": "ვალიდაცია",
    "building": "ვაშენებ",
    "launched": "გაშვებული",
}

ENTITY_LABELS = {
    "audiences": "აუდიტორია",
    "competitors": "კონკურენტები",
    "features": "ფუნქციები",
    "numbers": "რიცხვები",
    "locations": "ლოკაციები",
}

ENTITY_EXTRACTION_PROMPT = """
თქვენ ხართ ენტიტების ამოღების სისტემა ქართულ ბიზნეს დიალოგებისთვის.

**დავალება:** ამოიღეთ მნიშვნელოვანი ენტიტები მომხმარებლის პასუხიდან.

**იდეის კონტექსტი:** {idea_context}

**ველი:** {field_key}

**მომხმარებლის პასუხი:**
"{answer}"

**ამოსაღები ენტიტების კატეგორიები:**
1. **audiences** - აუდიტორია/მომხმარებლის სეგმენტები ("სტუდენტები", "SMB ბიზნესები")
2. **competitors** - კონკურენტები/ალტერნატივები ("ChatGPT", "Notion")
3. **features** - ფუნქციები/შესაძლებლობები ("AI chat", "PDF export")
4. **numbers** - რიცხვები ("500 ლარი", "3 თვე", "20%")
5. **locations** - ლოკაციები/ბაზრები ("თბილისი", "ევროპა")

**წესები:**
- ამოიღეთ მხოლოდ კონკრეტულად ნახსენები ენტიტები
- ნუ გამოიგონებთ ენტიტებს
- დააბრუნეთ ცარიელი მასივი თუ კატეგორიაში არაფერია
- თითოეულ კატეგორიაში max 5 ენტიტი

**პასუხის ფორმატი (JSON):**
{{"audiences": [], "competitors": [], "features": [], "numbers": [], "locations": []}}

მხოლოდ JSON დააბრუნეთ, სხვა ტექსტის გარეშე.
"""

CONTRADICTION_CHECK_PROMPT = """
თქვენ ხართ წინააღმდეგობების დეტექტორი ბიზნეს იდეის შესახებ დიალოგში.

**დავალება:** შეამოწმეთ არის თუ არა წინააღმდეგობა ახლანდელ პასუხსა და წინა პასუხებს შორის.

**მეხსიერებაში შენახული ინფორმაცია:**
{memory_summary}

**ახლანდელი ველი:** {field_key}

**ახლანდელი პასუხი:**
"{answer}"

**რას ეძებთ:**
1. პირდაპირი წინააღმდეგობები (ადრე: "ყველას აქვს ეს პრობლემა", ახლა: "მხოლოდ IT სპეციალისტებს")
2. რიცხვითი შეუსაბამობები (ადრე: "1000 მომხმარებელი", ახლა: "100 მომხმარებელი")
3. აუდიტორიის შეუთავსებლობა (ადრე: "სტუდენტები", ახლა: "მაღალანაზღაურებადი პროფესიონალები")
4. სტრატეგიული წინააღმდეგობები (ადრე: "B2C", ახლა: "ვყიდით კომპანიებს")

**არ ჩათვალოთ წინააღმდეგობად:**
- მცირე დეტალების დაზუსტებები
- ბუნებრივი პროგრესია იდეის განვითარებაში

**პასუხის ფორმატი (JSON):**
{{
  "has_contradiction": boolean,
  "contradiction_details": {{
    "field1": "პირველი ველის გასაღები",
    "statement1": "რა თქვა მანამდე",
    "statement2": "რა თქვა ახლა",
    "explanation": "მოკლე ახსნა"
  }},
  "clarification_question": "დაზუსტების კითხვა ქართულად"
}}

თუ არ არის წინააღმდეგობა: {{"has_contradiction": false}}

მხოლოდ JSON დააბრუნეთ, სხვა ტექსტის გარეშე.
"""
