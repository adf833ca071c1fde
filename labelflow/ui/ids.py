# Component ids shared between the notifier and the page layout
NOTIFICATIONS_CONTAINER = 'notifications-container'
NOTIFICATIONS_INTERVAL = 'notifications-interval'
NOTIFICATION = 'error-notification'

CONFIRM_MODAL = 'confirm-modal'
CONFIRM_MODAL_CONTENT = 'confirm-modal-content'
CONFIRM_MODAL_OK_BTN = 'confirm-modal-ok-btn'
CONFIRM_MODAL_CANCEL_BTN = 'confirm-modal-cancel-btn'
