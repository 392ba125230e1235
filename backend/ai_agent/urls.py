from django.urls import path

from .views import AssistantChatView

urlpatterns = [
    path('ai/chat/', AssistantChatView.as_view(), name='ai-chat'),
]

# Complete list of generated API endpoints:
#
# - POST /api/ai/chat/   → {response, actions_taken, context}
